"""Main CLI application using Typer."""
import asyncio
from datetime import date

import httpx
import typer
from dotenv import load_dotenv
from rich.console import Console
from rich.markdown import Markdown
from rich.panel import Panel
from rich.progress import BarColumn, Progress, TextColumn
from rich.table import Table

from ..config import configure_logging
from ..errors import FocuError
from ..llm import ProviderName
from ..postprocess import Summarizer, TaskExtractor
from ..storage import ChatType, MessageRole
from .providers import get_registry, get_repository, get_session

# Load environment variables
load_dotenv()

# Create Typer app
app = typer.Typer(
    name="focu",
    help="Journaling conversations with local and cloud language models",
    no_args_is_help=True,
    add_completion=True,
)

# Console for rich output
console = Console()


@app.callback()
def main_options(
    log_level: str = typer.Option(
        "WARNING",
        "--log-level",
        "-l",
        help="Engine log level (DEBUG, INFO, WARNING, ERROR)"
    )
):
    """Configure logging for every command."""
    configure_logging(log_level)


@app.command()
def models(
    provider: ProviderName | None = typer.Option(
        None,
        "--provider",
        "-p",
        help="Only list models served by this provider"
    )
):
    """List known models, including ones installed in the local daemon."""
    async def _models():
        registry = get_registry(console)
        try:
            await registry.refresh_local_models()

            table = Table(title="Models")
            table.add_column("Model", style="bold cyan")
            table.add_column("Provider")
            table.add_column("Name")
            table.add_column("Tags", style="dim")

            for info in registry.list_models(provider):
                marker = " [green]*[/green]" if info.id == registry.active_model else ""
                table.add_row(
                    info.id + marker,
                    info.provider.value,
                    info.display_name,
                    ", ".join(info.tags),
                )

            console.print(table)
        finally:
            await registry.close()

    asyncio.run(_models())


@app.command()
def new(
    chat_type: ChatType = typer.Option(
        ChatType.GENERAL,
        "--type",
        "-t",
        help="Session type, which selects the assistant persona"
    ),
    model: str | None = typer.Option(
        None,
        "--model",
        "-m",
        help="Model for this chat (default: FOCU_ACTIVE_MODEL)"
    ),
    date_string: str | None = typer.Option(
        None,
        "--date",
        "-d",
        help="Date the chat belongs to, YYYY-MM-DD (default: today)"
    ),
    start: bool = typer.Option(
        False,
        "--start",
        "-s",
        help="Send the session opener and print the first reply"
    )
):
    """Create a chat."""
    async def _new():
        registry = get_registry(console)
        repository = get_repository()
        session = get_session(registry, repository)

        try:
            await repository.connect()
            chat_id = await session.create_chat(chat_type, date_string or date.today().isoformat(), model)
            console.print(f"[green]Created chat {chat_id}[/green]")

            if start:
                reply_id = await session.start_session(chat_id)
                await _print_reply(repository, chat_id, reply_id)
                await session.wait_for_background_tasks()

        except FocuError as e:
            console.print(f"[red]Error: {e}[/red]")
            raise typer.Exit(code=1)
        finally:
            await session.close()
            await registry.close()
            await repository.disconnect()

    asyncio.run(_new())


@app.command()
def send(
    chat_id: int = typer.Argument(..., help="Chat to send to"),
    message: str = typer.Argument(..., help="Message text"),
    regenerate: bool = typer.Option(
        False,
        "--regenerate",
        "-r",
        help="Replace the last reply instead (MESSAGE is ignored)"
    )
):
    """Send a message and print the assistant's reply."""
    async def _send():
        registry = get_registry(console)
        repository = get_repository()
        session = get_session(registry, repository)

        try:
            await repository.connect()
            with console.status("[dim]Thinking...[/dim]"):
                if regenerate:
                    reply_id = await session.regenerate_reply(chat_id)
                else:
                    reply_id = await session.send(chat_id, message)
            await _print_reply(repository, chat_id, reply_id)
            await session.wait_for_background_tasks()
        finally:
            await session.close()
            await registry.close()
            await repository.disconnect()

    asyncio.run(_send())


async def _print_reply(repository, chat_id: int, reply_id: int | None) -> None:
    if reply_id is None:
        console.print("[yellow]No model available for this chat; nothing was sent.[/yellow]")
        raise typer.Exit(code=1)

    messages = await repository.get_chat_messages(chat_id)
    reply = next((m for m in messages if m.id == reply_id), None)
    if reply is None:
        return
    console.print(Panel(Markdown(reply.text or "_(empty reply)_"), title="Assistant", border_style="green"))


@app.command()
def summarize(
    chat_id: int = typer.Argument(..., help="Chat to summarize")
):
    """Summarize a chat and store the summary."""
    async def _summarize():
        registry = get_registry(console)
        repository = get_repository()

        try:
            await repository.connect()
            summary = await Summarizer(repository, registry).summarize(chat_id)
            if summary is None:
                console.print("[yellow]No summary generated[/yellow]")
                raise typer.Exit(code=1)
            console.print(Panel(Markdown(summary), title=f"Summary of chat {chat_id}"))
        finally:
            await registry.close()
            await repository.disconnect()

    asyncio.run(_summarize())


@app.command(name="extract-tasks")
def extract_tasks(
    chat_id: int = typer.Argument(..., help="Chat to extract tasks from")
):
    """Suggest tasks mentioned in a chat."""
    async def _extract():
        registry = get_registry(console)
        repository = get_repository()

        try:
            await repository.connect()
            tasks = await TaskExtractor(repository, registry).extract(chat_id)
            if not tasks:
                console.print("[dim]No tasks found.[/dim]")
                return
            for task in tasks:
                console.print(f"[cyan]-[/cyan] {task}")
        finally:
            await registry.close()
            await repository.disconnect()

    asyncio.run(_extract())


@app.command()
def history(
    chat_id: int | None = typer.Argument(None, help="Show this chat's messages"),
    limit: int = typer.Option(
        10,
        "--limit",
        "-n",
        help="Number of recent chats to list"
    )
):
    """List recent chats, or print one chat's transcript."""
    async def _history():
        repository = get_repository()

        try:
            await repository.connect()

            if chat_id is None:
                table = Table(title="Recent chats")
                table.add_column("ID", style="bold cyan", justify="right")
                table.add_column("Date")
                table.add_column("Type")
                table.add_column("Model", style="dim")
                table.add_column("Title")
                for chat in await repository.get_previous_chats(limit):
                    table.add_row(
                        str(chat.id),
                        chat.date_string,
                        chat.type.value,
                        chat.model,
                        chat.title or "",
                    )
                console.print(table)
                return

            chat = await repository.get_chat(chat_id)
            if chat is None:
                console.print(f"[red]Error: chat {chat_id} not found[/red]")
                raise typer.Exit(code=1)

            console.print(f"[bold]{chat.title or 'Untitled'}[/bold] [dim]({chat.date_string}, {chat.model})[/dim]")
            for m in await repository.get_chat_messages(chat_id):
                if m.role == MessageRole.SYSTEM:
                    continue
                style = "bold yellow" if m.role == MessageRole.USER else "bold green"
                console.print(f"[{style}]{m.role.value}:[/{style}] {m.text}")
            if chat.summary:
                console.print(Panel(chat.summary, title="Summary", border_style="dim"))
        finally:
            await repository.disconnect()

    asyncio.run(_history())


@app.command()
def pull(
    model: str = typer.Argument(..., help="Model to download into the local daemon")
):
    """Download a model into the local daemon."""
    async def _pull():
        registry = get_registry(console)

        try:
            adapter = await registry.adapter_for(ProviderName.OLLAMA)
            with Progress(
                TextColumn("[bold cyan]{task.description}"),
                BarColumn(),
                TextColumn("{task.percentage:>3.0f}%"),
                console=console,
            ) as progress:
                task = progress.add_task(model, total=100)
                async for event in adapter.pull_model(model):
                    progress.update(task, description=event.get("status", model))
                    if "percent" in event:
                        progress.update(task, completed=event["percent"])
                progress.update(task, completed=100)

            await registry.refresh_local_models()
            console.print(f"[green]Pulled {model}[/green]")

        except (FocuError, httpx.HTTPError) as e:
            console.print(f"[red]Error: {e}[/red]")
            raise typer.Exit(code=1)
        finally:
            await registry.close()

    asyncio.run(_pull())


def main():
    """Main entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
