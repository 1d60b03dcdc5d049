"""
Entry point for `python -m seedkeeper` and the `seedkeeper` console script.
"""

import logging
import os
import sys

import typer
from rich.console import Console

from seedkeeper.cli.app import app
from seedkeeper.cli.formatters import format_error_with_suggestions
from seedkeeper.exceptions import ConfigurationError, SeedkeeperError

# Exit status per failure class; anything else exits with 1
EXIT_CODES = {
    ConfigurationError: 2,
}


def main() -> None:
    """Runs the CLI and turns application errors into a panel and exit status."""
    if os.name == "nt":
        try:
            sys.stdout.reconfigure(encoding="utf-8")
        except (TypeError, AttributeError):
            pass

    console = Console()

    try:
        app()
    except (typer.Exit, typer.Abort):
        pass
    except KeyboardInterrupt:
        console.print(
            "\n[yellow]Interrupted. Tracked torrents keep seeding until the "
            "manager runs again.[/yellow]"
        )
        sys.exit(130)
    except SeedkeeperError as e:
        console.print(format_error_with_suggestions(e))
        sys.exit(EXIT_CODES.get(type(e), 1))
    except Exception as e:
        console.print(format_error_with_suggestions(e, {"type": "Unexpected"}))
        logging.getLogger("seedkeeper").debug("Full traceback:", exc_info=True)
        sys.exit(1)


if __name__ == "__main__":
    main()
