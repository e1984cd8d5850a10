"""Terminal front end for a chesslink game.

Renders a Rich chess board from the local player's side and reads moves
typed as UCI text ("e2e4", "e7e8q"). While the opponent is to move it
ticks the turn arbiter in the background of a spinner.
"""

from __future__ import annotations

import time

import chess
from rich.console import Console
from rich.panel import Panel
from rich.prompt import Prompt
from rich.table import Table
from rich.text import Text

from chesslink.arbiter import ArbiterState, TurnArbiter
from chesslink.errors import IllegalMove, MalformedCoordinate, NotYourTurn
from chesslink.models import Color, Session, Status

# Unicode piece symbols
_PIECE_SYMBOLS = {
    "K": "\u2654", "Q": "\u2655", "R": "\u2656", "B": "\u2657",
    "N": "\u2658", "P": "\u2659",
    "k": "\u265a", "q": "\u265b", "r": "\u265c", "b": "\u265d",
    "n": "\u265e", "p": "\u265f",
}

_LIGHT_SQ = "grey85"
_DARK_SQ = "grey50"
_HIGHLIGHT = "yellow"
_CHECK = "red"

_TICK_INTERVAL = 0.05

_RESIGN_WORDS = {"resign", "forfeit"}

_STATUS_TEXT = {
    Status.CHECKMATE: "Checkmate",
    Status.STALEMATE: "Stalemate",
    Status.FIFTY_MOVE_RULE: "Draw by the fifty-move rule",
    Status.THREEFOLD_REPETITION: "Draw by threefold repetition",
    Status.FORFEIT: "Forfeit",
}


def render_board(session: Session) -> Table:
    """Render the board beside the info sidebar for a session."""
    grid = Table.grid(padding=(0, 2))
    grid.add_column(ratio=2)
    grid.add_column(ratio=1)
    grid.add_row(_render_board_panel(session), _render_sidebar(session))
    return grid


def _render_board_panel(session: Session) -> Panel:
    board = session.engine.board
    is_flipped = session.my_color is Color.BLACK

    highlight_squares: set[int] = set()
    if session.last_move:
        mv = chess.Move.from_uci(session.last_move)
        highlight_squares.update((mv.from_square, mv.to_square))

    check_square = None
    if board.is_check():
        check_square = board.king(board.turn)

    table = Table(show_header=False, show_edge=False, pad_edge=False,
                  box=None, padding=(0, 1))
    table.add_column(width=2, justify="right")
    for _ in range(8):
        table.add_column(width=3, justify="center")

    ranks = range(8) if is_flipped else range(7, -1, -1)
    files = list(range(7, -1, -1)) if is_flipped else list(range(8))

    for rank in ranks:
        row: list[Text] = [Text(str(rank + 1), style="bold")]
        for file in files:
            sq = chess.square(file, rank)
            piece = board.piece_at(sq)

            is_light = (rank + file) % 2 == 1
            bg = _LIGHT_SQ if is_light else _DARK_SQ
            if sq in highlight_squares:
                bg = _HIGHLIGHT
            if sq == check_square:
                bg = _CHECK

            if piece is not None:
                symbol = _PIECE_SYMBOLS.get(piece.symbol(), "?")
                row.append(Text(f" {symbol} ", style=f"on {bg}"))
            else:
                row.append(Text("   ", style=f"on {bg}"))
        table.add_row(*row)

    file_labels = [Text("  ")]
    for f in files:
        file_labels.append(Text(f" {chr(ord('a') + f)} ", style="bold"))
    table.add_row(*file_labels)

    title = "chesslink"
    if session.status.is_terminal:
        title = f"Game Over: {_STATUS_TEXT[session.status]}"
    return Panel(table, title=title, border_style="blue")


def _render_sidebar(session: Session) -> Panel:
    parts: list[str] = []
    parts.append(f"[bold]You:[/bold] {session.my_name or '?'} ({session.my_color.value})")
    parts.append(
        f"[bold]Opponent:[/bold] {session.their_name or '?'} ({session.their_color.value})"
    )
    parts.append("")
    parts.append(f"Turn: {session.turn.value}")
    if session.engine.is_in_check(session.turn):
        parts.append("[red]Check![/red]")

    if session.move_list:
        parts.append("")
        parts.append("[bold]Moves:[/bold]")
        moves = session.move_list
        for i in range(0, len(moves), 2):
            black_move = moves[i + 1] if i + 1 < len(moves) else ""
            parts.append(f"  {i // 2 + 1}. {moves[i]} {black_move}")

    if session.status.is_terminal:
        parts.append("")
        parts.append(f"[bold red]{_STATUS_TEXT[session.status]}[/bold red]")

    return Panel("\n".join(parts), title="Info", border_style="green")


def _describe_result(session: Session) -> str:
    status = session.status
    if status is Status.FORFEIT:
        loser = session.turn
        return "You forfeited." if loser is session.my_color else "Your opponent forfeited."
    if status is Status.CHECKMATE:
        # The side to move is the one that got mated
        won = session.turn is not session.my_color
        return "Checkmate, you win!" if won else "Checkmate, you lose."
    return _STATUS_TEXT[status] + "."


def _wait_for_opponent(arbiter: TurnArbiter, console: Console) -> None:
    with console.status("Waiting for your opponent's move..."):
        while arbiter.state is ArbiterState.AWAITING_REMOTE_MOVE:
            if arbiter.tick() is None:
                time.sleep(_TICK_INTERVAL)


def _take_local_turn(arbiter: TurnArbiter, console: Console) -> None:
    text = Prompt.ask("Your move (e.g. e2e4, or 'resign')", console=console).strip()
    if text.lower() in _RESIGN_WORDS:
        arbiter.forfeit()
        return
    try:
        with console.status("Waiting for acknowledgement..."):
            accepted = arbiter.select_uci(text)
    except (MalformedCoordinate, IllegalMove, NotYourTurn) as e:
        console.print(f"[red]{e}[/red]")
        return
    if not accepted:
        console.print("[red]Your opponent rejected that move.[/red]")


def play(arbiter: TurnArbiter, console: Console | None = None) -> Status:
    """Run the game to completion in the terminal.

    Returns:
        The final status.
    """
    console = console or Console()
    session = arbiter.session
    console.print(render_board(session))

    while not arbiter.is_over:
        if arbiter.state is ArbiterState.AWAITING_LOCAL_MOVE:
            moves_before = len(session.move_list)
            _take_local_turn(arbiter, console)
            if len(session.move_list) == moves_before and not arbiter.is_over:
                continue
        else:
            _wait_for_opponent(arbiter, console)
        console.print(render_board(session))

    console.print(f"[bold]{_describe_result(session)}[/bold]")
    return session.status
