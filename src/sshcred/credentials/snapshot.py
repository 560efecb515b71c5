"""Snapshots of credentials taken before they leave this process.

A credential whose keys live in a file is meaningless on the far side of a
serialization boundary, where that file may not exist. A snapshot freezes the
keys into the credential itself at the moment of crossing.
"""

from abc import ABC, abstractmethod
from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Generic, TypeVar

from sshcred.credentials.base import SSHUserPrivateKey, StandardCredentials
from sshcred.credentials.private_key import BasicSSHUserPrivateKey
from sshcred.credentials.sources import DirectEntryPrivateKeySource

C = TypeVar("C", bound=StandardCredentials)

_crossing_boundary: ContextVar[bool] = ContextVar("sshcred_crossing_boundary", default=False)


@contextmanager
def serialization_boundary() -> Iterator[None]:
    """Mark that objects pickled in this context leave the trust domain.

    Credentials pickled inside the block are replaced by their snapshots.
    """
    token = _crossing_boundary.set(True)
    try:
        yield
    finally:
        _crossing_boundary.reset(token)


def is_crossing_boundary() -> bool:
    """Whether the current context is serializing across a boundary."""
    return _crossing_boundary.get()


class CredentialsSnapshotTaker(ABC, Generic[C]):
    """Takes self-contained snapshots of one type of credential."""

    @abstractmethod
    def type(self) -> type[C]:
        """Get the credential type this taker handles."""

    @abstractmethod
    def snapshot(self, credentials: C) -> C:
        """Get a self-contained copy of the credentials.

        Returns the credentials themselves when they are already
        self-contained.
        """


_SNAPSHOT_TAKERS: list[CredentialsSnapshotTaker] = []


def register_snapshot_taker(taker: CredentialsSnapshotTaker) -> None:
    """Register a snapshot taker."""
    _SNAPSHOT_TAKERS.append(taker)


def snapshot(credentials: C) -> C:
    """Get a self-contained snapshot of credentials.

    Args:
        credentials: Credentials about to be serialized.

    Returns:
        The snapshot from the first registered taker whose type matches, or
        the credentials unchanged when no taker applies.
    """
    for taker in _SNAPSHOT_TAKERS:
        if isinstance(credentials, taker.type()):
            return taker.snapshot(credentials)
    return credentials


class SSHUserPrivateKeySnapshotTaker(CredentialsSnapshotTaker[SSHUserPrivateKey]):
    """Freezes the keys of SSH private key credentials."""

    def type(self) -> type[SSHUserPrivateKey]:
        return SSHUserPrivateKey

    def snapshot(self, credentials: SSHUserPrivateKey) -> SSHUserPrivateKey:
        if isinstance(credentials, BasicSSHUserPrivateKey):
            if credentials.get_private_key_source().is_snapshot_source():
                return credentials
        return BasicSSHUserPrivateKey(
            scope=credentials.scope,
            id=credentials.id,
            username=credentials.username,
            private_key_source=DirectEntryPrivateKeySource.from_keys(
                credentials.get_private_keys()
            ),
            passphrase=credentials.get_passphrase(),
            description=credentials.description,
        )


register_snapshot_taker(SSHUserPrivateKeySnapshotTaker())
