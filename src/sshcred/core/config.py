"""Configuration management for sshcred.

Credential definitions are kept in a JSON file::

    {
      "credentials": [
        {
          "scope": "global",
          "id": "deploy",
          "username": "deploy",
          "description": "Deploy key",
          "passphrase": null,
          "private_key_source": {"kind": "file", "private_key_file": "/keys/deploy"}
        }
      ]
    }
"""

import json
import logging
from pathlib import Path
from typing import TYPE_CHECKING, Any

from pydantic import ValidationError

from sshcred.core.types import CredentialConfig

if TYPE_CHECKING:
    from sshcred.credentials.private_key import BasicSSHUserPrivateKey

logger = logging.getLogger(__name__)

CREDENTIALS_KEY = "credentials"


class Config:
    """Configuration manager for sshcred."""

    def __init__(self, config_path: Path | None = None) -> None:
        """Initialize configuration manager.

        Args:
            config_path: Path to configuration file. If None, uses default.
        """
        self._config_path = config_path
        self._config_data: dict[str, Any] = {}

    @classmethod
    def from_file(cls, config_path: Path) -> "Config":
        """Load configuration from file.

        Args:
            config_path: Path to configuration file.

        Returns:
            Config instance with loaded configuration.
        """
        instance = cls(config_path)
        instance.load()
        return instance

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Config":
        """Create configuration from dictionary.

        Args:
            data: Configuration dictionary.

        Returns:
            Config instance.
        """
        instance = cls()
        instance._config_data = data
        return instance

    def load(self) -> None:
        """Load configuration from file."""
        if self._config_path is None or not self._config_path.exists():
            return

        with open(self._config_path, encoding="utf-8") as f:
            self._config_data = json.load(f)

    def save(self, path: Path | None = None) -> None:
        """Save configuration to file.

        Args:
            path: Path to save configuration. Uses config_path if None.
        """
        save_path = path or self._config_path
        if save_path is None:
            raise ValueError("No path specified for saving configuration")

        save_path.parent.mkdir(parents=True, exist_ok=True)
        with open(save_path, "w", encoding="utf-8") as f:
            json.dump(self._config_data, f, indent=2, default=str)

    def get(self, key: str, default: Any = None) -> Any:
        """Get configuration value.

        Args:
            key: Configuration key (supports dot notation).
            default: Default value if key not found.

        Returns:
            Configuration value.
        """
        keys = key.split(".")
        value = self._config_data
        for k in keys:
            if isinstance(value, dict) and k in value:
                value = value[k]
            else:
                return default
        return value

    def set(self, key: str, value: Any) -> None:
        """Set configuration value.

        Args:
            key: Configuration key (supports dot notation).
            value: Value to set.
        """
        keys = key.split(".")
        data = self._config_data
        for k in keys[:-1]:
            if k not in data:
                data[k] = {}
            data = data[k]
        data[keys[-1]] = value

    def credential_configs(self) -> list[CredentialConfig]:
        """Get the valid credential definitions.

        Entries that fail validation are logged and skipped.
        """
        entries = self.get(CREDENTIALS_KEY, [])
        if not isinstance(entries, list):
            logger.warning(f"Ignoring \"{CREDENTIALS_KEY}\": expected a list")
            return []

        configs = []
        for index, entry in enumerate(entries):
            try:
                configs.append(CredentialConfig.model_validate(entry))
            except ValidationError as e:
                logger.warning(f"Skipping invalid credential definition #{index}: {e}")
        return configs

    def to_credentials(self) -> list["BasicSSHUserPrivateKey"]:
        """Build credentials from all valid definitions."""
        from sshcred.credentials.private_key import BasicSSHUserPrivateKey

        return [BasicSSHUserPrivateKey.from_config(c) for c in self.credential_configs()]

    def get_credential(self, credential_id: str) -> "BasicSSHUserPrivateKey | None":
        """Get credential by id.

        Args:
            credential_id: Credential id.

        Returns:
            The credential, or None if no valid definition has that id.
        """
        from sshcred.credentials.private_key import BasicSSHUserPrivateKey

        for config in self.credential_configs():
            if config.id == credential_id:
                return BasicSSHUserPrivateKey.from_config(config)
        return None

    def add_credential(self, credential: "BasicSSHUserPrivateKey") -> None:
        """Add a credential definition, replacing any with the same id."""
        self.remove_credential(credential.id)
        entries = self._config_data.setdefault(CREDENTIALS_KEY, [])
        entries.append(credential.to_config().model_dump(mode="json"))

    def remove_credential(self, credential_id: str) -> bool:
        """Remove a credential definition.

        Returns:
            True if removed, False if not found.
        """
        entries = self._config_data.get(CREDENTIALS_KEY, [])
        kept = [
            e for e in entries if not (isinstance(e, dict) and e.get("id") == credential_id)
        ]
        if len(kept) == len(entries):
            return False
        self._config_data[CREDENTIALS_KEY] = kept
        return True

    @property
    def data(self) -> dict[str, Any]:
        """Get raw configuration data."""
        return self._config_data
