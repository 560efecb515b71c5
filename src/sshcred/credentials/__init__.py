"""Credential types for sshcred."""

from sshcred.credentials.base import (
    SSHUserPrivateKey,
    StandardCredentials,
    StandardUsernameCredentials,
)
from sshcred.credentials.private_key import BasicSSHUserPrivateKey
from sshcred.credentials.snapshot import (
    CredentialsSnapshotTaker,
    SSHUserPrivateKeySnapshotTaker,
    is_crossing_boundary,
    register_snapshot_taker,
    serialization_boundary,
    snapshot,
)
from sshcred.credentials.sources import (
    DirectEntryPrivateKeySource,
    FileOnMasterPrivateKeySource,
    PrivateKeySource,
    UsersPrivateKeySource,
    register_private_key_source,
    source_from_config,
)

__all__ = [
    "BasicSSHUserPrivateKey",
    "CredentialsSnapshotTaker",
    "DirectEntryPrivateKeySource",
    "FileOnMasterPrivateKeySource",
    "PrivateKeySource",
    "SSHUserPrivateKey",
    "SSHUserPrivateKeySnapshotTaker",
    "StandardCredentials",
    "StandardUsernameCredentials",
    "UsersPrivateKeySource",
    "is_crossing_boundary",
    "register_private_key_source",
    "register_snapshot_taker",
    "serialization_boundary",
    "snapshot",
    "source_from_config",
]
