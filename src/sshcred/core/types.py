"""Type definitions for sshcred.

These models describe the persisted layout of a credential definition. The
live objects built from them live in :mod:`sshcred.credentials`.
"""

from enum import Enum
from typing import Annotated, Literal

from pydantic import BaseModel, Field, SecretStr, field_serializer


class CredentialsScope(Enum):
    """Visibility of a credential."""

    GLOBAL = "global"
    SYSTEM = "system"  # Controller only, never handed to agents
    USER = "user"


class DirectEntrySourceConfig(BaseModel):
    """Keys pasted directly into the credential."""

    kind: Literal["direct"] = "direct"
    private_key: SecretStr = SecretStr("")

    model_config = {"extra": "forbid"}

    @field_serializer("private_key", when_used="json")
    def dump_private_key(self, value: SecretStr) -> str:
        """Write the key text in clear; encryption at rest is the store's job."""
        return value.get_secret_value()


class FileSourceConfig(BaseModel):
    """A key file on the controller host."""

    kind: Literal["file"] = "file"
    private_key_file: str

    model_config = {"extra": "forbid"}


class UsersSourceConfig(BaseModel):
    """The running user's ``~/.ssh`` keys."""

    kind: Literal["users"] = "users"

    model_config = {"extra": "forbid"}


PrivateKeySourceConfig = Annotated[
    DirectEntrySourceConfig | FileSourceConfig | UsersSourceConfig,
    Field(discriminator="kind"),
]


class CredentialConfig(BaseModel):
    """Persisted definition of an SSH private key credential."""

    scope: CredentialsScope = CredentialsScope.GLOBAL
    id: str
    username: str
    description: str = ""
    passphrase: SecretStr | None = None
    private_key_source: PrivateKeySourceConfig = Field(
        default_factory=DirectEntrySourceConfig
    )

    model_config = {"extra": "forbid"}

    @field_serializer("passphrase", when_used="json")
    def dump_passphrase(self, value: SecretStr | None) -> str | None:
        """Write the passphrase in clear."""
        if value is None:
            return None
        return value.get_secret_value()
