"""Sequences store, gpg and TOTP calls for each command."""

from pathlib import Path
from typing import Callable, Optional, Protocol

from .commands import USAGE, Add, Command, Delete, Help, List, Show, Update
from .config import OperatorCredentials, Settings
from .secrets import (
    AlreadyExistsError,
    CryptoError,
    DeriveError,
    EmptySeedError,
    OathError,
    SinkError,
    ValidationError,
    self_update,
)
from .store import SecretStore


class EncryptionGateway(Protocol):
    def encrypt(self, plaintext: bytes, recipient: str, signing_key: str) -> bytes: ...

    def decrypt(self, ciphertext: bytes, key: str, recipient: str) -> bytes: ...


class CodeEngine(Protocol):
    def derive(self, seed: bytes) -> str: ...


class OutputSink(Protocol):
    def line(self, text: str) -> None: ...

    def copy(self, code: str) -> None: ...

    def success(self, message: str) -> None: ...

    def warn(self, message: str) -> None: ...

    def error(self, message: str) -> None: ...


class Orchestrator:
    """
    Runs one Command.

    Every command validates the operator credentials before touching the
    store. Errors are reported through the sink and turned into exit
    status 1; nothing is retried.
    """

    def __init__(
        self,
        settings: Settings,
        store: SecretStore,
        gateway: EncryptionGateway,
        engine: CodeEngine,
        sink: OutputSink,
        prompt: Callable[[str], str],
        install_dir: Optional[Path] = None,
    ):
        self.settings = settings
        self.store = store
        self.gateway = gateway
        self.engine = engine
        self.sink = sink
        self.prompt = prompt
        self.install_dir = install_dir

    def run(self, command: Command) -> int:
        try:
            credentials = self.settings.credentials()
        except OathError as e:
            self.sink.error(str(e))
            return 1

        try:
            if isinstance(command, Help):
                return self.help()
            if isinstance(command, Update):
                return self.update()

            self.store.ensure_root()

            if isinstance(command, Add):
                return self.add(credentials, command.identifier)
            if isinstance(command, Delete):
                return self.delete(credentials, command.identifier)
            if isinstance(command, Show):
                return self.show(credentials, command.identifier)
            if isinstance(command, List):
                return self.list(credentials)

        except EmptySeedError as e:
            self.sink.warn(str(e))
            return 1
        except ValidationError as e:
            self.sink.warn(str(e))
            self.sink.line(USAGE)
            return 1
        except OathError as e:
            self.sink.error(str(e))
            return 1

        raise TypeError(f"Unknown command: {command!r}")

    def add(self, credentials: OperatorCredentials, identifier: str) -> int:
        """Encrypt a seed read from a hidden prompt and store it."""
        secret_file = self.store.path_for(identifier, credentials.key_id)

        # Checked again atomically by store.write; this one just avoids
        # prompting for a seed that cannot be stored.
        if self.store.exists(identifier, credentials.key_id):
            self.sink.warn(f"File {secret_file} already exists")
            return 1

        try:
            seed = self.prompt("Private key: ").strip()
        except EOFError:
            seed = ""
        if not seed:
            raise EmptySeedError("Private key cannot be empty")

        try:
            ciphertext = self.gateway.encrypt(
                seed.encode(), credentials.email, credentials.key_id
            )
        except CryptoError as e:
            self.sink.error(str(e))
            self.sink.error("Cannot add key due to a problem")
            return 1

        try:
            self.store.write(identifier, credentials.key_id, ciphertext)
        except AlreadyExistsError as e:
            self.sink.warn(str(e))
            return 1

        self.sink.success(f"Key created for {identifier}")
        return 0

    def _decrypt(self, credentials: OperatorCredentials, identifier: str) -> bytes:
        ciphertext = self.store.read(identifier, credentials.key_id)
        try:
            return self.gateway.decrypt(
                ciphertext, credentials.key_id, credentials.email
            )
        except CryptoError as e:
            self.sink.error(str(e))
            raise CryptoError(f"Cannot retrieve private key for {identifier}") from e

    def delete(self, credentials: OperatorCredentials, identifier: str) -> int:
        """
        Remove a record.

        The record must decrypt first: a file we cannot read (wrong key,
        corruption) is refused rather than deleted.
        """
        try:
            self._decrypt(credentials, identifier)
        except CryptoError as e:
            self.sink.error(str(e))
            self.sink.error("Cannot delete key due to a problem")
            return 1

        for path in self.store.remove(identifier, credentials.key_id):
            self.sink.warn(f"Deleting {path}")

        if self.store.exists(identifier, credentials.key_id):
            self.sink.error(f"Cannot delete key for {identifier}")
            return 1

        self.sink.success(f"Key deleted for {identifier}")
        return 0

    def show(self, credentials: OperatorCredentials, identifier: str) -> int:
        """Print the current code, then copy it to the clipboard."""
        seed = self._decrypt(credentials, identifier)
        try:
            code = self.engine.derive(seed)
        except DeriveError as e:
            self.sink.error(str(e))
            self.sink.error(f"Cannot get code for {identifier}")
            return 1

        self.sink.line(code)

        try:
            self.sink.copy(code)
        except SinkError as e:
            self.sink.error(str(e))
            self.sink.error("Cannot copy code to clipboard")
            return 1

        self.sink.success("Code copied to clipboard")
        return 0

    def list(self, credentials: OperatorCredentials) -> int:
        for identifier in self.store.list_identifiers(credentials.key_id):
            self.sink.line(identifier)
        return 0

    def help(self) -> int:
        self.sink.line(USAGE)
        return 0

    def update(self) -> int:
        if self.install_dir is None:
            self.sink.warn("Cannot locate the oath installation")
            return 0

        output = self_update(self.install_dir)
        if output is None:
            self.sink.warn(
                f"{self.install_dir} is not a git checkout; upgrade oath with pip"
            )
            return 0

        if output:
            self.sink.line(output)
        self.sink.success("oath updated")
        return 0

