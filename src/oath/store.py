"""Encrypted seed files on disk: <root>/<identifier>/<key_id>.gpg"""

import os
import tempfile
from pathlib import Path
from typing import List

from .secrets import (
    AlreadyExistsError,
    NotFoundError,
    StoreError,
    StoreWriteError,
    ValidationError,
)

RECORD_SUFFIX = ".gpg"


def validate_identifier(identifier: str) -> str:
    """
    Reject identifiers that are not a single, plain path segment.

    The identifier becomes a directory name, so separators, NUL and the
    relative names "." and ".." would escape the store root.
    """
    if not identifier:
        raise ValidationError("Missing key identifier")

    if identifier in (".", ".."):
        raise ValidationError(f"Invalid key identifier: {identifier}")

    forbidden = {"/", "\\", "\0", os.sep}
    if os.altsep:
        forbidden.add(os.altsep)
    if any(char in identifier for char in forbidden):
        raise ValidationError(
            f"Invalid key identifier: {identifier!r} (path separators are not allowed)"
        )

    return identifier


class SecretStore:
    """
    One ciphertext file per (identifier, key_id).

    An identifier directory exists only while it holds at least one record.
    """

    def __init__(self, root: Path, suffix: str = RECORD_SUFFIX):
        self.root = Path(root)
        self.suffix = suffix

    def ensure_root(self) -> None:
        """Create the store root on first use."""
        try:
            self.root.mkdir(mode=0o700, parents=True, exist_ok=True)
        except OSError as e:
            raise StoreError(f"Cannot create store directory {self.root}: {e}") from e

    def dir_for(self, identifier: str) -> Path:
        return self.root / validate_identifier(identifier)

    def path_for(self, identifier: str, key_id: str) -> Path:
        return self.dir_for(identifier) / f"{key_id}{self.suffix}"

    def exists(self, identifier: str, key_id: str) -> bool:
        return self.path_for(identifier, key_id).is_file()

    def read(self, identifier: str, key_id: str) -> bytes:
        path = self.path_for(identifier, key_id)
        try:
            return path.read_bytes()
        except (FileNotFoundError, NotADirectoryError) as e:
            raise NotFoundError(f"No key found for {identifier}") from e
        except OSError as e:
            raise StoreError(f"Cannot read {path}: {e}") from e

    def write(self, identifier: str, key_id: str, ciphertext: bytes) -> Path:
        """
        Create the record, failing if it already exists.

        The ciphertext is written to a temp file and hard-linked into place,
        so the final path is either absent or complete, and two concurrent
        writers cannot both succeed.
        """
        secret_dir = self.dir_for(identifier)
        secret_file = self.path_for(identifier, key_id)

        try:
            secret_dir.mkdir(mode=0o700, parents=True, exist_ok=True)
        except OSError as e:
            raise StoreWriteError(f"Cannot create {secret_dir}: {e}") from e

        temp_file = None
        try:
            fd, temp_name = tempfile.mkstemp(
                prefix=f".{key_id}.", suffix=".tmp", dir=secret_dir
            )
            temp_file = Path(temp_name)
            with os.fdopen(fd, "wb") as f:
                f.write(ciphertext)
                f.flush()
                os.fsync(f.fileno())

            os.link(temp_file, secret_file)

        except FileExistsError as e:
            raise AlreadyExistsError(f"File {secret_file} already exists") from e
        except OSError as e:
            raise StoreWriteError(f"Cannot write {secret_file}: {e}") from e

        finally:
            try:
                if temp_file is not None and temp_file.exists():
                    temp_file.unlink()
                self._remove_dir_if_empty(secret_dir)
            except OSError as e:
                raise StoreWriteError(f"Cannot clean up {secret_dir}: {e}") from e

        return secret_file

    def remove(self, identifier: str, key_id: str) -> List[Path]:
        """
        Delete the record, then its directory if nothing else is left.

        Returns the paths that were removed. A missing record is a no-op.
        """
        removed = []
        secret_dir = self.dir_for(identifier)
        secret_file = self.path_for(identifier, key_id)

        try:
            if secret_file.is_file():
                secret_file.unlink()
                removed.append(secret_file)

            if self._remove_dir_if_empty(secret_dir):
                removed.append(secret_dir)
        except OSError as e:
            raise StoreError(f"Cannot delete {secret_file}: {e}") from e

        return removed

    def list_identifiers(self, key_id: str) -> List[str]:
        """Identifiers holding a record for key_id, sorted."""
        if not self.root.is_dir():
            return []

        try:
            return sorted(
                entry.name
                for entry in self.root.iterdir()
                if entry.is_dir() and (entry / f"{key_id}{self.suffix}").is_file()
            )
        except OSError as e:
            raise StoreError(f"Cannot list {self.root}: {e}") from e

    @staticmethod
    def _remove_dir_if_empty(directory: Path) -> bool:
        if directory.is_dir() and not any(directory.iterdir()):
            directory.rmdir()
            return True
        return False
