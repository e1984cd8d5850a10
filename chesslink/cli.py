"""Command line entry point.

Usage:
    chesslink <host:port> <listener|initiator>

Start the initiator first or second; it keeps retrying until the
listener is up. Other settings come from CHESSLINK_* environment
variables (see chesslink.config).
"""

from __future__ import annotations

import argparse
import logging
import sys

from rich.console import Console
from rich.logging import RichHandler

from chesslink.arbiter import TurnArbiter
from chesslink.channel import connect_as_initiator, connect_as_listener
from chesslink.config import LinkConfig
from chesslink.errors import ChessLinkError
from chesslink.session import Role, establish_session
from chesslink.tui import play


def _configure_logging(level: str, console: Console) -> None:
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True)],
    )


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="chesslink",
        description="Two-player networked chess over a direct TCP connection",
    )
    parser.add_argument("address", help="host:port to listen on or connect to")
    parser.add_argument(
        "role",
        choices=[r.value for r in Role],
        help="listener binds the address, initiator connects to it",
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    """CLI entry point. Returns the process exit status."""
    args = _build_parser().parse_args(argv)
    console = Console()

    try:
        config = LinkConfig.from_env()
    except ValueError as e:
        console.print(f"[red]{e}[/red]")
        return 1
    _configure_logging(config.log_level, console)

    role = Role(args.role)
    try:
        if role is Role.LISTENER:
            console.print(f"Waiting for an opponent on {args.address}...")
            channel = connect_as_listener(args.address, config)
        else:
            console.print(f"Connecting to {args.address}...")
            channel = connect_as_initiator(args.address, config)

        with channel:
            session = establish_session(channel, role, config)
            console.print(
                f"You play [bold]{session.my_color.value}[/bold] "
                f"against {session.their_name or 'an anonymous opponent'}."
            )
            play(TurnArbiter(session, config), console)
    except ValueError as e:
        console.print(f"[red]{e}[/red]")
        return 1
    except ChessLinkError as e:
        console.print(f"[red]{type(e).__name__}: {e}[/red]")
        return 1
    except KeyboardInterrupt:
        console.print("\nShutting down.")
        return 130
    return 0


if __name__ == "__main__":
    sys.exit(main())
