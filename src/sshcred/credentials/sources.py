"""Sources of SSH private keys.

A source hands out raw private key text and a modification token. The token
is a revision count or a timestamp that only grows when the keys may have
changed, so a credential can cache what it derived from the keys until the
token moves.
"""

import logging
import time
from abc import ABC, abstractmethod
from collections.abc import Callable, Sequence
from pathlib import Path
from typing import Any, ClassVar

from pydantic import SecretStr

from sshcred.core.paths import get_user_ssh_dir
from sshcred.core.types import (
    DirectEntrySourceConfig,
    FileSourceConfig,
    PrivateKeySourceConfig,
    UsersSourceConfig,
)

logger = logging.getLogger(__name__)

# Separates keys stored together in one direct entry
KEY_SEPARATOR = "\f"

# Seconds between two stats of the same key file(s)
POLL_INTERVAL = 30.0

# Token of a file source whose files are all missing
NEVER_MODIFIED = -(2**63)

# Looked up under ~/.ssh, in order of preference
USER_KEY_NAMES = ("id_ecdsa", "id_rsa", "id_dsa", "identity")


def _now() -> float:
    return time.monotonic()


def _mtime_millis(path: Path) -> int:
    return path.stat().st_mtime_ns // 1_000_000


def _read_key_file(path: Path) -> str | None:
    try:
        return path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        logger.warning(f"Could not read private key file {path}: {e}")
        return None


class PrivateKeySource(ABC):
    """A source of private keys."""

    kind: ClassVar[str]

    @abstractmethod
    def get_private_keys(self) -> list[str]:
        """Get the private keys from the source.

        Never raises for I/O problems; unreadable keys are logged and left
        out.
        """

    def get_private_keys_last_modified(self) -> int:
        """Get a token that grows whenever the keys may have changed.

        The default suits sources whose keys never change. It is greater than
        the initial token of a credential so the first lookup still fetches.
        """
        return 1

    def is_snapshot_source(self) -> bool:
        """Whether the source is self-contained and safe to serialize as is."""
        return False

    @abstractmethod
    def to_config(self) -> PrivateKeySourceConfig:
        """Get the persisted form of this source."""


_SOURCE_FACTORIES: dict[str, Callable[[Any], PrivateKeySource]] = {}


def register_private_key_source(kind: str) -> Callable[[type], type]:
    """Register a source class under its persisted ``kind`` tag.

    The class must provide a ``from_config`` classmethod.
    """

    def decorator(cls: type) -> type:
        cls.kind = kind
        _SOURCE_FACTORIES[kind] = cls.from_config
        return cls

    return decorator


def source_from_config(config: PrivateKeySourceConfig) -> PrivateKeySource:
    """Build a private key source from its persisted form.

    Raises:
        ValueError: If no source is registered for ``config.kind``.
    """
    factory = _SOURCE_FACTORIES.get(config.kind)
    if factory is None:
        raise ValueError(f"Unknown private key source kind: {config.kind}")
    return factory(config)


@register_private_key_source("direct")
class DirectEntryPrivateKeySource(PrivateKeySource):
    """Keys entered directly, e.g. pasted into a form."""

    def __init__(self, private_key: str | SecretStr = "") -> None:
        """Initialize source.

        Args:
            private_key: One or more keys separated by ``KEY_SEPARATOR``.
        """
        if not isinstance(private_key, SecretStr):
            private_key = SecretStr(private_key or "")
        self._private_key = private_key

    @classmethod
    def from_keys(cls, private_keys: Sequence[str]) -> "DirectEntryPrivateKeySource":
        """Create a source holding the given keys."""
        return cls(KEY_SEPARATOR.join(private_keys))

    @classmethod
    def from_config(cls, config: DirectEntrySourceConfig) -> "DirectEntryPrivateKeySource":
        return cls(config.private_key)

    @property
    def private_key(self) -> str:
        """Get the stored text, keys joined by ``KEY_SEPARATOR``."""
        return self._private_key.get_secret_value()

    def get_private_keys(self) -> list[str]:
        return [key for key in self.private_key.split(KEY_SEPARATOR) if key]

    def is_snapshot_source(self) -> bool:
        return True

    def to_config(self) -> DirectEntrySourceConfig:
        return DirectEntrySourceConfig(private_key=self._private_key)

    def __reduce__(self) -> tuple[Any, ...]:
        return (type(self), (self.private_key,))

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, DirectEntryPrivateKeySource):
            return NotImplemented
        return self.private_key == other.private_key

    def __hash__(self) -> int:
        return hash(self.private_key)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(keys={len(self.get_private_keys())})"


class _PolledPrivateKeySource(PrivateKeySource):
    """Base for sources backed by files whose mtime is polled.

    The last token is kept and only recomputed once ``POLL_INTERVAL`` has
    passed, or straight away while it is negative (files missing or never
    checked). The poll fields are not locked: two threads may both stat
    within the same window, which only costs an extra stat.
    """

    def __init__(self) -> None:
        self._last_modified = 0
        self._next_check = float("-inf")

    def get_private_keys_last_modified(self) -> int:
        now = _now()
        if now >= self._next_check or self._last_modified < 0:
            self._last_modified = self._compute_last_modified()
            self._next_check = now + POLL_INTERVAL
        return self._last_modified

    @abstractmethod
    def _compute_last_modified(self) -> int:
        """Stat the backing file(s), returning ``NEVER_MODIFIED`` if absent."""


def looks_like_inline_key(private_key_file: str | None) -> bool:
    """Check whether a key file path is actually key text.

    Definitions written by an old, broken upgrade stored the key contents in
    the path field.
    """
    return bool(
        private_key_file
        and private_key_file.startswith("---")
        and "---BEGIN" in private_key_file
        and "---END" in private_key_file
    )


def load_file_source(private_key_file: str) -> PrivateKeySource:
    """Load a file source from its persisted path.

    A path holding inline key text is loaded as a direct entry source.
    """
    if looks_like_inline_key(private_key_file):
        logger.debug("Key file path holds key text; loading it as a direct entry")
        return DirectEntryPrivateKeySource(private_key_file)
    return FileOnMasterPrivateKeySource(private_key_file)


@register_private_key_source("file")
class FileOnMasterPrivateKeySource(_PolledPrivateKeySource):
    """A key file on the controller host."""

    def __init__(self, private_key_file: str) -> None:
        """Initialize source.

        Args:
            private_key_file: Path to the private key file.
        """
        super().__init__()
        self._private_key_file = private_key_file

    @classmethod
    def from_config(cls, config: FileSourceConfig) -> PrivateKeySource:
        return load_file_source(config.private_key_file)

    @property
    def private_key_file(self) -> str:
        """Get private key file path."""
        return self._private_key_file

    def get_private_keys(self) -> list[str]:
        if self._private_key_file:
            path = Path(self._private_key_file)
            if path.is_file():
                private_key = _read_key_file(path)
                if private_key is not None:
                    return [private_key]
        return []

    def _compute_last_modified(self) -> int:
        if not self._private_key_file:
            return NEVER_MODIFIED
        try:
            return _mtime_millis(Path(self._private_key_file))
        except FileNotFoundError:
            return NEVER_MODIFIED
        except (OSError, ValueError) as e:
            logger.warning(f"Could not stat private key file {self._private_key_file}: {e}")
            return NEVER_MODIFIED

    def to_config(self) -> FileSourceConfig:
        return FileSourceConfig(private_key_file=self._private_key_file)

    def __reduce__(self) -> tuple[Any, ...]:
        return (load_file_source, (self._private_key_file,))

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, FileOnMasterPrivateKeySource):
            return NotImplemented
        return self._private_key_file == other._private_key_file

    def __hash__(self) -> int:
        return hash(self._private_key_file)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self._private_key_file!r})"


@register_private_key_source("users")
class UsersPrivateKeySource(_PolledPrivateKeySource):
    """The keys of the user running this process, from ``~/.ssh``."""

    @classmethod
    def from_config(cls, config: UsersSourceConfig) -> "UsersPrivateKeySource":
        return cls()

    def files(self) -> list[Path]:
        """Get the key files present, in order of preference."""
        ssh_dir = get_user_ssh_dir()
        return [ssh_dir / name for name in USER_KEY_NAMES if (ssh_dir / name).is_file()]

    def get_private_keys(self) -> list[str]:
        keys = []
        for path in self.files():
            private_key = _read_key_file(path)
            if private_key is not None:
                keys.append(private_key)
        return keys

    def _compute_last_modified(self) -> int:
        last_modified = NEVER_MODIFIED
        for path in self.files():
            try:
                last_modified = max(last_modified, _mtime_millis(path))
            except OSError as e:
                logger.warning(f"Could not stat private key file {path}: {e}")
        return last_modified

    def to_config(self) -> UsersSourceConfig:
        return UsersSourceConfig()

    def __reduce__(self) -> tuple[Any, ...]:
        return (type(self), ())

    def __eq__(self, other: object) -> bool:
        return isinstance(other, UsersPrivateKeySource)

    def __hash__(self) -> int:
        return hash(type(self))

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"
