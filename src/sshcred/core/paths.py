"""Application data directory and path utilities."""

import os
import platform
from pathlib import Path

DEFAULT_CONFIG_FILENAME = "credentials.json"


def get_app_data_dir() -> Path:
    """Get the application data directory based on OS.

    Returns:
        Path to the application data directory.
        - Linux/macOS: ~/.sshcred
        - Windows: %APPDATA%/sshcred
    """
    system = platform.system()

    if system == "Windows":
        appdata = os.environ.get("APPDATA")
        if appdata:
            return Path(appdata) / "sshcred"
        else:
            # Fallback to user home
            return Path.home() / "AppData" / "Roaming" / "sshcred"
    else:
        return Path.home() / ".sshcred"


def get_default_config_path() -> Path:
    """Get the default credential definition file.

    Returns:
        Path to ``credentials.json`` inside the application data directory.
    """
    return get_app_data_dir() / DEFAULT_CONFIG_FILENAME


def get_user_ssh_dir() -> Path:
    """Get the ``.ssh`` directory of the user running this process."""
    return Path.home() / ".ssh"
