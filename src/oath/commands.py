"""Command line parsing: argv -> one Command value."""

import argparse
from dataclasses import dataclass
from typing import Optional, Union

from . import __version__
from .secrets import ValidationError
from .store import validate_identifier


@dataclass(frozen=True)
class Add:
    identifier: str


@dataclass(frozen=True)
class Delete:
    identifier: str


@dataclass(frozen=True)
class Show:
    identifier: str


@dataclass(frozen=True)
class List:
    pass


@dataclass(frozen=True)
class Update:
    pass


@dataclass(frozen=True)
class Help:
    pass


Command = Union[Add, Delete, Show, List, Update, Help]

IDENTIFIER_COMMANDS = {"add": Add, "delete": Delete, "show": Show}
PLAIN_COMMANDS = {"list": List, "update": Update, "help": Help}
RESERVED_NAMES = frozenset(IDENTIFIER_COMMANDS) | frozenset(PLAIN_COMMANDS)

USAGE = """\
Usage:

~ $ oath [add | delete | show | list | update | help] <key identifier>

Example:

- Adding a key:

  ~ $ oath add twitter.com
  Private key:
  [SUCCESS]  Key created for twitter.com

- Showing and copying a 6 digit code for a key:

  ~ $ oath twitter.com
  012345
  [SUCCESS]  Code copied to clipboard

- Deleting a key:

  ~ $ oath delete twitter.com
  [WARN]     Deleting ~/.oath/twitter.com/<key id>.gpg
  [WARN]     Deleting ~/.oath/twitter.com
  [SUCCESS]  Key deleted for twitter.com

- Listing keys:

  ~ $ oath list
  github.com
  twitter.com

- Updating oath:

  ~ $ oath update

Environment:
  OATH_EMAIL    Recipient identity (required)
  OATH_KEY      GPG key id; also the record file name (required)
  OATH_DIR      Store directory (default: ~/.oath)
  OATH_GPG      gpg executable (default: gpg2 if installed, else gpg)
  OATH_CONFIG   Config file (default: ~/.config/oath/config.yaml)
"""


def _check_identifier(identifier: str) -> str:
    validate_identifier(identifier)
    if identifier in RESERVED_NAMES:
        raise ValidationError(
            f"Key identifier cannot be a command name: {identifier}"
        )
    return identifier


def parse_command(command: Optional[str], identifier: Optional[str] = None) -> Command:
    """
    Turn the two positional words into a Command.

    A single word that is not a command name is an identifier to show:
    `oath github.com` means `oath show github.com`.
    """
    if not command:
        if identifier:
            raise ValidationError("Missing command")
        return Help()

    if command in IDENTIFIER_COMMANDS:
        if not identifier:
            raise ValidationError("Missing key identifier")
        return IDENTIFIER_COMMANDS[command](_check_identifier(identifier))

    if command in PLAIN_COMMANDS:
        if identifier:
            raise ValidationError(f"'{command}' does not take a key identifier")
        return PLAIN_COMMANDS[command]()

    if identifier:
        raise ValidationError(f"Unknown command: {command}")

    return Show(_check_identifier(command))


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="oath",
        description="Encrypted TOTP seeds - print and copy 6 digit codes",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=USAGE,
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("-d", "--dir", help="Store directory (default: ~/.oath)")
    parser.add_argument(
        "command",
        nargs="?",
        metavar="command",
        help="add | delete | show | list | update | help, or a key identifier",
    )
    parser.add_argument("identifier", nargs="?", help="Key identifier")
    return parser
