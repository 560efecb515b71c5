"""Base credential types.

Only the identity fields a private key credential needs are modelled here;
storage and encryption at rest belong to whatever registry holds them.
"""

import uuid
from abc import ABC, abstractmethod

from pydantic import SecretStr

from sshcred.core.types import CredentialsScope


class StandardCredentials(ABC):
    """A credential with a scope, an id and a description."""

    def __init__(
        self,
        scope: CredentialsScope | None = None,
        id: str | None = None,
        description: str | None = None,
    ) -> None:
        """Initialize credential identity.

        Args:
            scope: Credential scope. Defaults to ``GLOBAL``.
            id: Unique id. A random UUID is generated when empty.
            description: Free text description.
        """
        self._scope = scope or CredentialsScope.GLOBAL
        self._id = id or str(uuid.uuid4())
        self._description = description or ""

    @property
    def scope(self) -> CredentialsScope:
        """Get credential scope."""
        return self._scope

    @property
    def id(self) -> str:
        """Get credential id."""
        return self._id

    @property
    def description(self) -> str:
        """Get credential description."""
        return self._description

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, StandardCredentials):
            return NotImplemented
        return self._id == other._id

    def __hash__(self) -> int:
        return hash(self._id)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(id={self._id!r}, scope={self._scope.value!r})"


class StandardUsernameCredentials(StandardCredentials):
    """A credential that carries a username."""

    def __init__(
        self,
        scope: CredentialsScope | None,
        id: str | None,
        username: str,
        description: str | None = None,
    ) -> None:
        super().__init__(scope, id, description)
        self._username = username

    @property
    def username(self) -> str:
        """Get username."""
        return self._username


class SSHUserPrivateKey(StandardUsernameCredentials):
    """A username with one or more SSH private keys."""

    @abstractmethod
    def get_private_keys(self) -> list[str]:
        """Get all private keys, in OpenSSH-compatible text form."""

    def get_private_key(self) -> str:
        """Get the first private key, or an empty string if there is none."""
        private_keys = self.get_private_keys()
        return private_keys[0] if private_keys else ""

    @abstractmethod
    def get_passphrase(self) -> SecretStr | None:
        """Get the passphrase protecting the keys."""
