"""sshcred - SSH private key credentials.

This package resolves SSH private keys from pluggable sources, converts
legacy PuTTY keys to OpenSSH format, caches the result until the source
changes and snapshots credentials before they are serialized elsewhere.
"""

from sshcred.core.config import Config
from sshcred.core.types import CredentialConfig, CredentialsScope
from sshcred.credentials import (
    BasicSSHUserPrivateKey,
    DirectEntryPrivateKeySource,
    FileOnMasterPrivateKeySource,
    PrivateKeySource,
    SSHUserPrivateKey,
    UsersPrivateKeySource,
    serialization_boundary,
    snapshot,
)
from sshcred.ssh.keys import KeyConversionError, normalize_private_key

__version__ = "0.1.0"

__all__ = [
    # Configuration
    "Config",
    "CredentialConfig",
    "CredentialsScope",
    # Credentials
    "BasicSSHUserPrivateKey",
    "SSHUserPrivateKey",
    # Key sources
    "DirectEntryPrivateKeySource",
    "FileOnMasterPrivateKeySource",
    "PrivateKeySource",
    "UsersPrivateKeySource",
    # Snapshots
    "serialization_boundary",
    "snapshot",
    # Key conversion
    "KeyConversionError",
    "normalize_private_key",
]


def main() -> None:
    """CLI entry point."""
    import sys

    from sshcred.cli import main as cli_main

    sys.exit(cli_main())
