"""Pytest fixtures and configuration."""

import base64
import hashlib
import hmac
import os
import shutil
import struct
import tempfile
from collections.abc import Callable
from pathlib import Path
from typing import Generator

import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ec, ed25519, rsa
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes
from cryptography.hazmat.primitives.kdf.argon2 import Argon2id

PPK_MAC_KEY_PREFIX = b"putty-private-key-file-mac-key"

_CURVE_NAMES = {
    "secp256r1": "nistp256",
    "secp384r1": "nistp384",
    "secp521r1": "nistp521",
}


def _ssh_string(value: bytes) -> bytes:
    return struct.pack(">I", len(value)) + value


def _mpint(value: int) -> bytes:
    if value == 0:
        return _ssh_string(b"")
    return _ssh_string(value.to_bytes(value.bit_length() // 8 + 1, "big"))


def _putty_blobs(key) -> tuple[str, bytes, bytes]:
    """Encode a key as PuTTY (algorithm, public blob, private blob)."""
    if isinstance(key, rsa.RSAPrivateKey):
        numbers = key.private_numbers()
        public = (
            _ssh_string(b"ssh-rsa")
            + _mpint(numbers.public_numbers.e)
            + _mpint(numbers.public_numbers.n)
        )
        private = (
            _mpint(numbers.d)
            + _mpint(numbers.p)
            + _mpint(numbers.q)
            + _mpint(numbers.iqmp)
        )
        return "ssh-rsa", public, private

    if isinstance(key, ec.EllipticCurvePrivateKey):
        curve = _CURVE_NAMES[key.curve.name]
        algorithm = f"ecdsa-sha2-{curve}"
        point = key.public_key().public_bytes(
            encoding=serialization.Encoding.X962,
            format=serialization.PublicFormat.UncompressedPoint,
        )
        public = (
            _ssh_string(algorithm.encode())
            + _ssh_string(curve.encode())
            + _ssh_string(point)
        )
        private = _mpint(key.private_numbers().private_value)
        return algorithm, public, private

    if isinstance(key, ed25519.Ed25519PrivateKey):
        public_bytes = key.public_key().public_bytes(
            encoding=serialization.Encoding.Raw,
            format=serialization.PublicFormat.Raw,
        )
        seed = key.private_bytes(
            encoding=serialization.Encoding.Raw,
            format=serialization.PrivateFormat.Raw,
            encryption_algorithm=serialization.NoEncryption(),
        )
        public = _ssh_string(b"ssh-ed25519") + _ssh_string(public_bytes)
        return "ssh-ed25519", public, _ssh_string(seed)

    raise TypeError(f"Unsupported key type: {type(key)}")


def _base64_lines(data: bytes) -> list[str]:
    encoded = base64.b64encode(data).decode("ascii")
    return [encoded[i : i + 64] for i in range(0, len(encoded), 64)]


def write_ppk(key, passphrase: str = "", comment: str = "test-key", version: int = 2) -> str:
    """Write a key in PuTTY format, the way PuTTYgen does."""
    algorithm, public, private = _putty_blobs(key)
    encryption = "aes256-cbc" if passphrase else "none"
    secret = passphrase.encode("utf-8")
    kdf_lines: list[str] = []

    if passphrase:
        private += bytes(-len(private) % 16)
        if version == 2:
            first = hashlib.sha1(b"\x00\x00\x00\x00" + secret).digest()
            second = hashlib.sha1(b"\x00\x00\x00\x01" + secret).digest()
            cipher_key, iv = (first + second)[:32], bytes(16)
            mac_key = hashlib.sha1(PPK_MAC_KEY_PREFIX + secret).digest()
        else:
            salt = os.urandom(16)
            derived = Argon2id(
                salt=salt, length=80, iterations=1, lanes=1, memory_cost=8192
            ).derive(secret)
            cipher_key, iv, mac_key = derived[:32], derived[32:48], derived[48:]
            kdf_lines = [
                "Key-Derivation: Argon2id",
                "Argon2-Memory: 8192",
                "Argon2-Passes: 1",
                "Argon2-Parallelism: 1",
                f"Argon2-Salt: {salt.hex()}",
            ]
    else:
        cipher_key = iv = None
        mac_key = hashlib.sha1(PPK_MAC_KEY_PREFIX).digest() if version == 2 else b""

    mac_data = b"".join(
        _ssh_string(part)
        for part in (
            algorithm.encode(),
            encryption.encode(),
            comment.encode(),
            public,
            private,
        )
    )
    digest = hashlib.sha1 if version == 2 else hashlib.sha256
    mac = hmac.new(mac_key, mac_data, digest).hexdigest()

    if cipher_key is not None:
        encryptor = Cipher(algorithms.AES(cipher_key), modes.CBC(iv)).encryptor()
        private = encryptor.update(private) + encryptor.finalize()

    public_lines = _base64_lines(public)
    private_lines = _base64_lines(private)
    lines = [
        f"PuTTY-User-Key-File-{version}: {algorithm}",
        f"Encryption: {encryption}",
        f"Comment: {comment}",
        f"Public-Lines: {len(public_lines)}",
        *public_lines,
        *kdf_lines,
        f"Private-Lines: {len(private_lines)}",
        *private_lines,
        f"Private-MAC: {mac}",
    ]
    return "\n".join(lines) + "\n"


def to_openssh(key) -> str:
    """Serialize a key as an unencrypted OpenSSH private key."""
    return key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.OpenSSH,
        encryption_algorithm=serialization.NoEncryption(),
    ).decode("ascii")


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for tests."""
    tmpdir = tempfile.mkdtemp()
    try:
        yield Path(tmpdir)
    finally:
        shutil.rmtree(tmpdir, ignore_errors=True)


@pytest.fixture(scope="session")
def rsa_key() -> rsa.RSAPrivateKey:
    """A 2048-bit RSA key shared by the session."""
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture(scope="session")
def ed25519_key() -> ed25519.Ed25519PrivateKey:
    """An Ed25519 key shared by the session."""
    return ed25519.Ed25519PrivateKey.generate()


@pytest.fixture(scope="session")
def ecdsa_key() -> ec.EllipticCurvePrivateKey:
    """A NIST P-256 key shared by the session."""
    return ec.generate_private_key(ec.SECP256R1())


@pytest.fixture
def make_ppk() -> Callable[..., str]:
    """Factory writing keys in PuTTY format."""
    return write_ppk


@pytest.fixture
def openssh_text() -> Callable[..., str]:
    """Factory serializing keys in OpenSSH format."""
    return to_openssh


@pytest.fixture
def home_dir(temp_dir: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Point the user's home directory at an empty temporary directory."""
    home = temp_dir / "home"
    (home / ".ssh").mkdir(parents=True)
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.setenv("USERPROFILE", str(home))
    return home
