"""Main CLI application using Typer."""
import asyncio
import logging

import typer
from dotenv import load_dotenv
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape

from ..conversation import ConversationController, ConversationState
from ..ui.formatting import format_error_banner, format_timestamp, render_markdown
from .providers import require_client

# Load environment variables
load_dotenv()

# Create Typer app
app = typer.Typer(
    name="geminichat",
    help="Chat with Gemini (or an OpenAI-compatible model) from the terminal",
    no_args_is_help=True,
    add_completion=True,
)

# Console for rich output; diagnostics go to stderr
console = Console()
err_console = Console(stderr=True)

LOG_LEVELS = ("debug", "info", "warning", "error")
EXIT_WORDS = ("exit", "quit", "q")


def configure_logging(log_level: str | None) -> None:
    """Send geminichat log records to stderr through Rich.

    Args:
        log_level: debug, info, warning or error; error when None

    Raises:
        typer.BadParameter: If the level name is unknown
    """
    level = (log_level or "error").lower()
    if level not in LOG_LEVELS:
        raise typer.BadParameter(
            f"expected one of {', '.join(LOG_LEVELS)}", param_hint="--log-level"
        )
    logging.basicConfig(
        level=level.upper(),
        format="%(name)s: %(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=err_console, show_path=False, rich_tracebacks=True)],
        force=True,
    )


class ConsoleRenderer:
    """Prints conversation transitions to a Rich console.

    Only what is new is printed: the assistant reply on SETTLED, the error
    line on FAILED and a note on clear. User input is already on screen.
    """

    def __init__(self, out: Console) -> None:
        self._out = out

    def __call__(self, state: ConversationState) -> None:
        if state.is_settled:
            reply = state.last_message
            self._out.print(
                f"[bold green]Gemini[/bold green] [dim]{format_timestamp(reply.timestamp)}[/dim]"
            )
            self._out.print(render_markdown(reply.text))
            self._out.print()
        elif state.is_failed:
            self._out.print(f"[bold red]{escape(format_error_banner(state.error_message))}[/bold red]\n")
        elif state.is_idle:
            self._out.print("[dim]Chat cleared.[/dim]\n")


@app.command()
def chat(
    log_level: str | None = typer.Option(
        None,
        "--log-level",
        "-l",
        help="Log to stderr with level: debug, info, warning or error"
    )
):
    """Interactive chat in the console."""
    configure_logging(log_level)

    async def _chat():
        client = require_client(err_console)

        async with ConversationController(client) as controller:
            controller.subscribe(ConsoleRenderer(console))

            console.print(f"[bold cyan]Gemini Chat[/bold cyan] [dim]({client.model})[/dim]")
            console.print("[dim]Type '/clear' to start over, 'exit', 'quit', or 'q' to leave[/dim]\n")

            while True:
                try:
                    user_input = console.input("[bold yellow]You:[/bold yellow] ")
                except (KeyboardInterrupt, EOFError):
                    console.print("\n[dim]Goodbye![/dim]")
                    break

                command = user_input.strip().lower()
                if not command:
                    continue

                if command in EXIT_WORDS:
                    console.print("[dim]Goodbye![/dim]")
                    break

                if command == "/clear":
                    controller.clear_chat()
                    continue

                controller.send_message(user_input)
                with console.status("[dim]Gemini is typing...[/dim]"):
                    await controller.drain()

    asyncio.run(_chat())


@app.command()
def ask(
    text: str = typer.Argument(..., help="Message to send"),
    log_level: str | None = typer.Option(
        None,
        "--log-level",
        "-l",
        help="Log to stderr with level: debug, info, warning or error"
    )
):
    """Send one message and print the reply. Exits with code 1 on failure."""
    configure_logging(log_level)

    if not text.strip():
        err_console.print("[red]Error: message is empty[/red]")
        raise typer.Exit(code=1)

    async def _ask() -> ConversationState:
        client = require_client(err_console)
        async with ConversationController(client) as controller:
            controller.send_message(text)
            await controller.drain()
            return controller.state

    state = asyncio.run(_ask())

    if state.is_failed:
        err_console.print(f"[red]{escape(format_error_banner(state.error_message))}[/red]")
        raise typer.Exit(code=1)

    console.print(render_markdown(state.last_message.text))


@app.command(name="tui")
def tui_command(
    log_level: str | None = typer.Option(
        None,
        "--log-level",
        "-l",
        help="Show log panel with level: debug (all), info, warning, or error"
    ),
):
    """Launch interactive TUI chat interface."""
    if log_level is not None and log_level.lower() not in LOG_LEVELS:
        raise typer.BadParameter(
            f"expected one of {', '.join(LOG_LEVELS)}", param_hint="--log-level"
        )

    async def _tui():
        from ..ui import run_chat_tui

        client = require_client(err_console)
        await run_chat_tui(ConversationController(client), log_level=log_level)
        console.print("\n[dim]Goodbye![/dim]")

    try:
        asyncio.run(_tui())
    except KeyboardInterrupt:
        console.print("\n[dim]Goodbye![/dim]")


def main():
    """Main entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
