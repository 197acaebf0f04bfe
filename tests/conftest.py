"""Shared fixtures: in-memory stand-ins for gpg and the terminal."""

import pytest

from oath.config import Settings
from oath.orchestrator import Orchestrator
from oath.secrets import CryptoError, SinkError, TotpEngine
from oath.store import SecretStore

SEED = "JBSWY3DPEHPK3PXP"
EMAIL = "me@example.com"
KEY_ID = "424184E122529120CC1821756759ADDD12CB6379"
# 2020-09-13T12:26:40Z, inside a single 30 second step
FIXED_TIME = 1600000000


class FakeGateway:
    """Reversible 'encryption' tied to the key id, with switchable failures."""

    def __init__(self):
        self.fail_encrypt = False
        self.fail_decrypt = False
        self.calls = []

    def encrypt(self, plaintext, recipient, signing_key):
        self.calls.append(("encrypt", recipient, signing_key))
        if self.fail_encrypt:
            raise CryptoError("gpg: encryption failed")
        return b"fake-gpg:" + signing_key.encode() + b":" + plaintext[::-1]

    def decrypt(self, ciphertext, key, recipient):
        self.calls.append(("decrypt", key, recipient))
        if self.fail_decrypt:
            raise CryptoError("gpg: decryption failed: No secret key")
        prefix = b"fake-gpg:" + key.encode() + b":"
        if not ciphertext.startswith(prefix):
            raise CryptoError("gpg: decryption failed: bad data")
        plaintext = ciphertext[len(prefix):][::-1]
        if not plaintext:
            raise CryptoError("Decryption produced an empty secret")
        return plaintext


class FakeSink:
    """Collects everything the orchestrator would have shown."""

    def __init__(self):
        self.lines = []
        self.copied = []
        self.successes = []
        self.warnings = []
        self.errors = []
        self.fail_copy = False

    def line(self, text):
        self.lines.append(text)

    def copy(self, code):
        if self.fail_copy:
            raise SinkError("Clipboard unavailable")
        self.copied.append(code)

    def success(self, message):
        self.successes.append(message)

    def warn(self, message):
        self.warnings.append(message)

    def error(self, message):
        self.errors.append(message)


class Prompt:
    """Answers the hidden seed prompt with queued values."""

    def __init__(self, *answers):
        self.answers = list(answers)
        self.asked = []

    def __call__(self, message):
        self.asked.append(message)
        return self.answers.pop(0)


@pytest.fixture
def store_dir(tmp_path):
    return tmp_path / "oath"


@pytest.fixture
def settings(store_dir):
    return Settings(store_dir=store_dir, gpg_binary="gpg", email=EMAIL, key_id=KEY_ID)


@pytest.fixture
def store(store_dir):
    return SecretStore(store_dir)


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture
def sink():
    return FakeSink()


@pytest.fixture
def engine():
    return TotpEngine(clock=lambda: FIXED_TIME)


@pytest.fixture
def make_orchestrator(settings, store, gateway, engine, sink):
    """Build an orchestrator; pass seeds for the hidden prompt."""

    def factory(*answers, **overrides):
        options = dict(
            settings=settings,
            store=store,
            gateway=gateway,
            engine=engine,
            sink=sink,
            prompt=Prompt(*answers),
        )
        options.update(overrides)
        return Orchestrator(**options)

    return factory
