"""PuTTY private key files (``.ppk``).

PuTTY stores keys in its own text format rather than the OpenSSH one. This
module reads format versions 2 and 3 of that format, checks the MAC,
decrypts protected keys and rebuilds the key as a ``cryptography`` object so
it can be written back out in OpenSSH format.
"""

import base64
import binascii
import hashlib
import hmac
import re
import struct

from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import dsa, ec, ed25519, rsa
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes
from cryptography.hazmat.primitives.kdf.argon2 import Argon2id

SUPPORTED_VERSIONS = (2, 3)

_HEADER_RE = re.compile(r"^PuTTY-User-Key-File-(\d+):\s*(\S+)$")

_MAC_KEY_PREFIX = b"putty-private-key-file-mac-key"

PrivateKey = (
    rsa.RSAPrivateKey
    | dsa.DSAPrivateKey
    | ec.EllipticCurvePrivateKey
    | ed25519.Ed25519PrivateKey
)

_CURVES: dict[str, type[ec.EllipticCurve]] = {
    "nistp256": ec.SECP256R1,
    "nistp384": ec.SECP384R1,
    "nistp521": ec.SECP521R1,
}


class PuTTYKeyError(ValueError):
    """Raised when a PuTTY key cannot be parsed, decrypted or rebuilt."""


def is_putty_key(text: str) -> bool:
    """Check whether text is a PuTTY private key.

    Only the structure is inspected: the first non-blank line must be a
    ``PuTTY-User-Key-File-<version>: <algorithm>`` header.

    Args:
        text: Candidate key text.

    Returns:
        True if the text looks like a PuTTY key file.
    """
    for line in text.lstrip("\ufeff").splitlines():
        line = line.strip()
        if line:
            return _HEADER_RE.match(line) is not None
    return False


def _ssh_string(value: bytes) -> bytes:
    return struct.pack(">I", len(value)) + value


class _WireReader:
    """Reads SSH wire-format fields from a key blob."""

    def __init__(self, data: bytes) -> None:
        self._data = data
        self._pos = 0

    def read_uint32(self) -> int:
        if self._pos + 4 > len(self._data):
            raise PuTTYKeyError("Truncated key blob")
        (value,) = struct.unpack_from(">I", self._data, self._pos)
        self._pos += 4
        return value

    def read_string(self) -> bytes:
        length = self.read_uint32()
        end = self._pos + length
        if end > len(self._data):
            raise PuTTYKeyError("Truncated key blob")
        value = self._data[self._pos : end]
        self._pos = end
        return value

    def read_mpint(self) -> int:
        return int.from_bytes(self.read_string(), "big", signed=True)


def _parse(text: str) -> tuple[int, str, dict[str, str], dict[str, bytes]]:
    """Split a PuTTY key file into header fields and decoded sections.

    Returns:
        Tuple of (version, algorithm, fields, sections). ``sections`` maps
        ``Public``/``Private`` to the base64-decoded blobs.
    """
    lines = iter(
        line.strip() for line in text.lstrip("\ufeff").splitlines() if line.strip()
    )
    header = next(lines, "")
    match = _HEADER_RE.match(header)
    if match is None:
        raise PuTTYKeyError("Not a PuTTY key file")
    version = int(match.group(1))
    algorithm = match.group(2)

    fields: dict[str, str] = {}
    sections: dict[str, bytes] = {}
    for line in lines:
        name, sep, value = line.partition(":")
        if not sep:
            raise PuTTYKeyError("Malformed line in PuTTY key file")
        name = name.strip()
        value = value.strip()
        if not name.endswith("-Lines"):
            fields[name] = value
            continue

        section = name[: -len("-Lines")]
        try:
            count = int(value)
        except ValueError as e:
            raise PuTTYKeyError(f"Invalid line count for {section} section") from e
        chunk = []
        for _ in range(count):
            data_line = next(lines, None)
            if data_line is None:
                raise PuTTYKeyError(f"Truncated {section} section")
            chunk.append(data_line)
        try:
            sections[section] = base64.b64decode("".join(chunk), validate=True)
        except binascii.Error as e:
            raise PuTTYKeyError(f"Invalid base64 in {section} section") from e

    return version, algorithm, fields, sections


def _v2_cipher_key(passphrase: bytes) -> bytes:
    first = hashlib.sha1(b"\x00\x00\x00\x00" + passphrase).digest()
    second = hashlib.sha1(b"\x00\x00\x00\x01" + passphrase).digest()
    return (first + second)[:32]


def _v3_keys(fields: dict[str, str], passphrase: bytes) -> tuple[bytes, bytes, bytes]:
    """Derive (cipher key, IV, MAC key) for a version 3 key."""
    kdf = fields.get("Key-Derivation")
    if kdf != "Argon2id":
        raise PuTTYKeyError(f"Unsupported key derivation: {kdf}")
    try:
        memory = int(fields["Argon2-Memory"])
        passes = int(fields["Argon2-Passes"])
        parallelism = int(fields["Argon2-Parallelism"])
        salt = bytes.fromhex(fields["Argon2-Salt"])
    except (KeyError, ValueError) as e:
        raise PuTTYKeyError("Incomplete Argon2 parameters") from e

    try:
        derived = Argon2id(
            salt=salt,
            length=80,
            iterations=passes,
            lanes=parallelism,
            memory_cost=memory,
        ).derive(passphrase)
    except ValueError as e:
        raise PuTTYKeyError("Invalid Argon2 parameters") from e
    return derived[:32], derived[32:48], derived[48:]


class PuTTYKey:
    """A decoded PuTTY private key."""

    def __init__(self, text: str, passphrase: str = "") -> None:
        """Parse and, when needed, decrypt a PuTTY key.

        Args:
            text: Contents of the ``.ppk`` file.
            passphrase: Passphrase for encrypted keys. Ignored otherwise.

        Raises:
            PuTTYKeyError: If the key is malformed, uses an unsupported
                format or the MAC does not match (wrong passphrase).
        """
        version, algorithm, fields, sections = _parse(text)
        if version not in SUPPORTED_VERSIONS:
            raise PuTTYKeyError(f"Unsupported PuTTY key format version {version}")
        if "Public" not in sections or "Private" not in sections:
            raise PuTTYKeyError("PuTTY key is missing its key data")
        mac = fields.get("Private-MAC")
        if mac is None:
            raise PuTTYKeyError("PuTTY key has no Private-MAC")

        self._version = version
        self._algorithm = algorithm
        self._encryption = fields.get("Encryption", "none")
        self._comment = fields.get("Comment", "")
        self._public_blob = sections["Public"]

        private_blob = sections["Private"]
        secret = passphrase.encode("utf-8")
        if self._encryption == "none":
            mac_key = hashlib.sha1(_MAC_KEY_PREFIX).digest() if version == 2 else b""
        elif self._encryption == "aes256-cbc":
            if version == 2:
                cipher_key, iv = _v2_cipher_key(secret), bytes(16)
                mac_key = hashlib.sha1(_MAC_KEY_PREFIX + secret).digest()
            else:
                cipher_key, iv, mac_key = _v3_keys(fields, secret)
            if len(private_blob) % 16:
                raise PuTTYKeyError("Encrypted private blob is not block aligned")
            decryptor = Cipher(algorithms.AES(cipher_key), modes.CBC(iv)).decryptor()
            private_blob = decryptor.update(private_blob) + decryptor.finalize()
        else:
            raise PuTTYKeyError(f"Unsupported encryption: {self._encryption}")

        mac_data = b"".join(
            _ssh_string(part)
            for part in (
                algorithm.encode("ascii"),
                self._encryption.encode("ascii"),
                self._comment.encode("utf-8"),
                self._public_blob,
                private_blob,
            )
        )
        digest = hashlib.sha1 if version == 2 else hashlib.sha256
        expected = hmac.new(mac_key, mac_data, digest).hexdigest()
        if not hmac.compare_digest(expected, mac.lower()):
            raise PuTTYKeyError("MAC check failed: wrong passphrase or corrupted key")

        self._private_blob = private_blob

    @property
    def version(self) -> int:
        """Get the PuTTY format version."""
        return self._version

    @property
    def algorithm(self) -> str:
        """Get the SSH key algorithm name, e.g. ``ssh-rsa``."""
        return self._algorithm

    @property
    def comment(self) -> str:
        """Get the key comment."""
        return self._comment

    @property
    def encrypted(self) -> bool:
        """Whether the file was passphrase protected."""
        return self._encryption != "none"

    @property
    def public_blob(self) -> bytes:
        """Get the public key in SSH wire format."""
        return self._public_blob

    def to_private_key(self) -> PrivateKey:
        """Rebuild the key as a ``cryptography`` private key object.

        Raises:
            PuTTYKeyError: If the blobs do not describe a valid key.
        """
        public = _WireReader(self._public_blob)
        private = _WireReader(self._private_blob)
        if public.read_string() != self._algorithm.encode("ascii"):
            raise PuTTYKeyError("Public blob does not match the key algorithm")

        try:
            if self._algorithm == "ssh-rsa":
                e = public.read_mpint()
                n = public.read_mpint()
                d = private.read_mpint()
                p = private.read_mpint()
                q = private.read_mpint()
                iqmp = private.read_mpint()
                return rsa.RSAPrivateNumbers(
                    p=p,
                    q=q,
                    d=d,
                    dmp1=rsa.rsa_crt_dmp1(d, p),
                    dmq1=rsa.rsa_crt_dmq1(d, q),
                    iqmp=iqmp,
                    public_numbers=rsa.RSAPublicNumbers(e=e, n=n),
                ).private_key()

            if self._algorithm == "ssh-dss":
                p = public.read_mpint()
                q = public.read_mpint()
                g = public.read_mpint()
                y = public.read_mpint()
                x = private.read_mpint()
                return dsa.DSAPrivateNumbers(
                    x=x,
                    public_numbers=dsa.DSAPublicNumbers(
                        y=y,
                        parameter_numbers=dsa.DSAParameterNumbers(p=p, q=q, g=g),
                    ),
                ).private_key()

            if self._algorithm.startswith("ecdsa-sha2-"):
                curve_name = public.read_string().decode("ascii", errors="replace")
                curve = _CURVES.get(curve_name)
                if curve is None:
                    raise PuTTYKeyError(f"Unsupported curve: {curve_name}")
                return ec.derive_private_key(private.read_mpint(), curve())

            if self._algorithm == "ssh-ed25519":
                # Little-endian integer, high zero bytes may be dropped
                seed = private.read_string()
                if len(seed) > 32:
                    raise PuTTYKeyError("Invalid Ed25519 private key length")
                return ed25519.Ed25519PrivateKey.from_private_bytes(
                    seed.ljust(32, b"\x00")
                )
        except PuTTYKeyError:
            raise
        except (ValueError, UnsupportedAlgorithm) as e:
            raise PuTTYKeyError(f"Invalid {self._algorithm} key: {e}") from e

        raise PuTTYKeyError(f"Unsupported key algorithm: {self._algorithm}")

    def to_openssh(self) -> str:
        """Export the key as an unencrypted OpenSSH private key block."""
        key = self.to_private_key()
        try:
            data = key.private_bytes(
                encoding=serialization.Encoding.PEM,
                format=serialization.PrivateFormat.OpenSSH,
                encryption_algorithm=serialization.NoEncryption(),
            )
        except (ValueError, UnsupportedAlgorithm) as e:
            raise PuTTYKeyError(f"Cannot export {self._algorithm} key: {e}") from e
        return data.decode("ascii")
