"""SSH key handling for sshcred."""

from sshcred.ssh.keys import (
    KeyConversionError,
    KeyInfo,
    describe_private_key,
    fingerprint,
    fingerprint_public_blob,
    normalize_private_key,
)
from sshcred.ssh.putty import PuTTYKey, PuTTYKeyError, is_putty_key

__all__ = [
    "KeyConversionError",
    "KeyInfo",
    "PuTTYKey",
    "PuTTYKeyError",
    "describe_private_key",
    "fingerprint",
    "fingerprint_public_blob",
    "is_putty_key",
    "normalize_private_key",
]
