"""Core layer for sshcred."""

from sshcred.core.config import Config
from sshcred.core.types import (
    CredentialConfig,
    CredentialsScope,
    DirectEntrySourceConfig,
    FileSourceConfig,
    UsersSourceConfig,
)

__all__ = [
    "Config",
    "CredentialConfig",
    "CredentialsScope",
    "DirectEntrySourceConfig",
    "FileSourceConfig",
    "UsersSourceConfig",
]
