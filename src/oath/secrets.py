"""Core secret handling: errors, the gpg gateway and the TOTP engine."""

import re
import subprocess
import time
from pathlib import Path
from typing import Callable, Optional

import pyotp


class OathError(Exception):
    """Base exception for oath errors."""
    pass


class ConfigurationError(OathError):
    """Operator identity missing or config file unreadable."""
    pass


class ValidationError(OathError):
    """Bad or missing identifier argument."""
    pass


class EmptySeedError(ValidationError):
    """Blank seed entered at the prompt."""
    pass


class AlreadyExistsError(OathError):
    """A record already exists for this identifier and key."""
    pass


class NotFoundError(OathError):
    """No record for this identifier and key."""
    pass


class StoreError(OathError):
    """The store directory could not be read or changed."""
    pass


class StoreWriteError(StoreError):
    """Writing a record to disk failed."""
    pass


class CryptoError(OathError):
    """gpg failed to encrypt or decrypt."""
    pass


class DeriveError(OathError):
    """A decrypted seed did not produce a code."""
    pass


class SinkError(OathError):
    """The code could not be delivered (clipboard)."""
    pass


class GpgGateway:
    """
    Encrypt and decrypt seeds by running gpg.

    Plaintext and ciphertext travel over stdin/stdout so the seed never
    touches the filesystem or the process arguments.
    """

    def __init__(self, binary: str = "gpg"):
        self.binary = binary

    def _run(self, args: list, data: bytes) -> bytes:
        command = [self.binary, "--batch", "--yes", "--quiet", *args]
        try:
            result = subprocess.run(command, input=data, capture_output=True)
        except FileNotFoundError as e:
            raise CryptoError(f"{self.binary} not found: {e}") from e

        if result.returncode != 0:
            stderr = result.stderr.decode(errors="replace").strip()
            raise CryptoError(f"{self.binary} exited with {result.returncode}: {stderr}")

        return result.stdout

    def encrypt(self, plaintext: bytes, recipient: str, signing_key: str) -> bytes:
        """Encrypt plaintext for recipient."""
        ciphertext = self._run(
            ["-u", signing_key, "-r", recipient, "--encrypt"], plaintext
        )
        if not ciphertext:
            raise CryptoError("Encryption produced no output")
        return ciphertext

    def decrypt(self, ciphertext: bytes, key: str, recipient: str) -> bytes:
        """
        Decrypt ciphertext.

        Fails closed: an empty plaintext is an error, never a valid seed.
        """
        plaintext = self._run(["-u", key, "-r", recipient, "--decrypt"], ciphertext)
        if not plaintext:
            raise CryptoError("Decryption produced an empty secret")
        return plaintext


_CODE_PATTERN = re.compile(r"^[0-9]{6}$")


def normalize_seed(seed: bytes) -> str:
    """Base32 seeds are case-insensitive and often pasted with spaces."""
    try:
        text = seed.decode("utf-8")
    except UnicodeDecodeError as e:
        raise DeriveError("Seed is not valid text") from e
    return "".join(text.split()).upper()


class TotpEngine:
    """Derive RFC 6238 codes (30 second step, 6 digits) with pyotp."""

    def __init__(self, clock: Callable[[], float] = time.time):
        self.clock = clock

    def derive(self, seed: bytes) -> str:
        """Return the 6 digit code for the current time step."""
        secret = normalize_seed(seed)
        if not secret:
            raise DeriveError("Seed is empty")

        try:
            code = pyotp.TOTP(secret).at(self.clock())
        except ValueError as e:
            # binascii.Error is a ValueError
            raise DeriveError(f"Seed is not valid base32: {e}") from e

        if not _CODE_PATTERN.match(code or ""):
            raise DeriveError("TOTP engine returned no code")
        return code


def self_update(install_dir: Path, remote: str = "origin", branch: str = "master") -> Optional[str]:
    """
    Pull the latest version when oath runs from a git checkout.

    Returns git's output, or None when install_dir is not a checkout.
    """
    if not (install_dir / ".git").is_dir():
        return None

    try:
        result = subprocess.run(
            ["git", "-C", str(install_dir), "pull", remote, branch],
            capture_output=True,
            text=True,
        )
    except FileNotFoundError as e:
        raise OathError(f"git not found: {e}") from e

    if result.returncode != 0:
        raise OathError(f"Failed to update: {result.stderr.strip()}")

    return result.stdout.strip()
