"""CLI for oath - encrypted TOTP seeds."""

import getpass
import sys
from pathlib import Path

import pyperclip
from rich.console import Console
from rich.markup import escape

from .commands import build_parser, parse_command
from .config import load_settings
from .orchestrator import Orchestrator
from .secrets import GpgGateway, OathError, SinkError, TotpEngine, ValidationError
from .store import SecretStore

console = Console()
err_console = Console(stderr=True)

# Repository root when running from a checkout (src/oath/cli.py -> ../..)
INSTALL_DIR = Path(__file__).resolve().parents[2]


class ConsoleSink:
    """
    Tagged messages on the terminal, codes on stdout and the clipboard.

    Raw values (codes, identifiers) go through plain print so they can be
    piped; everything else is rich-formatted.
    """

    def __init__(self, out: Console = console, err: Console = err_console):
        self.out = out
        self.err = err

    def line(self, text: str) -> None:
        print(text)

    def copy(self, code: str) -> None:
        try:
            pyperclip.copy(code)
        except pyperclip.PyperclipException as e:
            raise SinkError(f"Clipboard unavailable: {e}") from e

    def success(self, message: str) -> None:
        self.out.print(f"[bold bright_green]\\[SUCCESS]  {escape(message)}[/]", highlight=False)

    def warn(self, message: str) -> None:
        self.err.print(f"[bold bright_yellow]\\[WARN]     {escape(message)}[/]", highlight=False)

    def error(self, message: str) -> None:
        self.err.print(f"[bold bright_red]\\[ERROR]    {escape(message)}[/]", highlight=False)


def main(argv=None):
    """Main entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)
    sink = ConsoleSink()

    try:
        command = parse_command(args.command, args.identifier)
    except ValidationError as e:
        sink.warn(str(e))
        parser.print_help()
        return 1

    try:
        settings = load_settings(store_dir=Path(args.dir) if args.dir else None)
    except OathError as e:
        sink.error(str(e))
        return 1

    orchestrator = Orchestrator(
        settings=settings,
        store=SecretStore(settings.store_dir),
        gateway=GpgGateway(settings.gpg_binary),
        engine=TotpEngine(),
        sink=sink,
        prompt=getpass.getpass,
        install_dir=INSTALL_DIR,
    )
    return orchestrator.run(command)


if __name__ == "__main__":
    sys.exit(main())
