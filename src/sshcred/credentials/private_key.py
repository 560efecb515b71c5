"""Username with SSH private key credentials."""

import logging
import threading
from typing import Any

from pydantic import SecretStr

from sshcred.core.types import CredentialConfig, CredentialsScope
from sshcred.credentials.base import SSHUserPrivateKey
from sshcred.credentials.sources import PrivateKeySource, source_from_config
from sshcred.ssh.keys import KeyConversionError, normalize_private_key

logger = logging.getLogger(__name__)


class BasicSSHUserPrivateKey(SSHUserPrivateKey):
    """A username with private keys taken from a :class:`PrivateKeySource`.

    The keys are normalized to OpenSSH format on first use and cached until
    the source reports a newer modification token. An empty cache is refetched on
    every lookup. Lookups are serialized per credential, so concurrent
    callers never see a half-built cache or convert the same keys twice.
    """

    def __init__(
        self,
        scope: CredentialsScope | None,
        id: str | None,
        username: str,
        private_key_source: PrivateKeySource,
        passphrase: str | SecretStr | None = None,
        description: str | None = None,
    ) -> None:
        """Initialize credential.

        Args:
            scope: Credential scope.
            id: Credential id. Generated when empty.
            username: SSH username.
            private_key_source: Where the private keys come from.
            passphrase: Passphrase protecting the keys. Empty means none.
            description: Free text description.
        """
        super().__init__(scope, id, username, description)
        if isinstance(passphrase, SecretStr):
            passphrase = passphrase.get_secret_value()
        self._passphrase = SecretStr(passphrase) if passphrase else None
        self._private_key_source = private_key_source

        self._lock = threading.Lock()
        self._private_keys: list[str] | None = None
        self._private_keys_last_modified = 0

    @classmethod
    def from_config(cls, config: CredentialConfig) -> "BasicSSHUserPrivateKey":
        """Create credential from its persisted definition."""
        return cls(
            scope=config.scope,
            id=config.id,
            username=config.username,
            private_key_source=source_from_config(config.private_key_source),
            passphrase=config.passphrase,
            description=config.description,
        )

    def to_config(self) -> CredentialConfig:
        """Get the persisted definition of this credential."""
        return CredentialConfig(
            scope=self.scope,
            id=self.id,
            username=self.username,
            description=self.description,
            passphrase=self._passphrase,
            private_key_source=self._private_key_source.to_config(),
        )

    def get_private_key_source(self) -> PrivateKeySource:
        """Get the source of the private keys."""
        return self._private_key_source

    def get_passphrase(self) -> SecretStr | None:
        return self._passphrase

    def get_private_keys(self) -> list[str]:
        """Get the private keys, refreshing them if the source changed.

        Returns:
            A copy of the cached keys in source order. Keys that could not
            be converted are left out.
        """
        with self._lock:
            last_modified = self._private_key_source.get_private_keys_last_modified()
            if (
                not self._private_keys
                or last_modified > self._private_keys_last_modified
            ):
                self._private_keys = self._resolve_private_keys()
                self._private_keys_last_modified = last_modified
            return list(self._private_keys)

    def _resolve_private_keys(self) -> list[str]:
        passphrase = self._passphrase.get_secret_value() if self._passphrase else None
        private_keys = []
        for index, private_key in enumerate(self._private_key_source.get_private_keys()):
            try:
                private_keys.append(normalize_private_key(private_key, passphrase))
            except KeyConversionError as e:
                # Key text is never logged
                logger.warning(f"Skipping private key #{index} of {self.id}: {e}")
        logger.debug(f"Resolved {len(private_keys)} private key(s) for {self.id}")
        return private_keys

    def __reduce__(self) -> tuple[Any, ...]:
        from sshcred.credentials.snapshot import is_crossing_boundary, snapshot

        if is_crossing_boundary() and not self._private_key_source.is_snapshot_source():
            return snapshot(self).__reduce__()

        passphrase = self._passphrase.get_secret_value() if self._passphrase else None
        return (
            type(self),
            (
                self.scope,
                self.id,
                self.username,
                self._private_key_source,
                passphrase,
                self.description,
            ),
        )
