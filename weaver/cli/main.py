"""CLI entry point and commands.

Provides the main CLI application with commands for:
- chat: Interactive session that designs and creates n8n workflows
- check: Normalize a workflow file and report field errors
- fmt: Render a JSON plan as Loom text
"""

import asyncio
import json
import uuid
from pathlib import Path
from typing import Annotated, Any

import typer
from rich.console import Console
from rich.panel import Panel
from rich.prompt import Prompt
from rich.table import Table

from weaver import __version__, loom
from weaver.exceptions import WeaverError
from weaver.logging_config import configure_logging

app = typer.Typer(
    name="weaver",
    help="Conversational n8n workflow builder",
    add_completion=False,
    no_args_is_help=True,
)

console = Console()


@app.callback()
def main(
    log_level: Annotated[
        str | None,
        typer.Option("--log-level", "-l", help="Log level (DEBUG, INFO, WARNING, ERROR)"),
    ] = None,
) -> None:
    """Weaver: describe an automation, get an n8n workflow."""
    configure_logging(log_level.upper() if log_level else None)  # type: ignore[arg-type]


def _read_document(path: Path) -> Any:
    """Load a JSON or Loom document, exiting with a message on failure."""
    if not path.exists():
        console.print(f"[red]File not found: {path}[/red]")
        raise typer.Exit(1)

    text = path.read_text(encoding="utf-8")
    if path.suffix.lower() == ".json" or text.lstrip().startswith("{"):
        try:
            return json.loads(text)
        except json.JSONDecodeError as e:
            console.print(f"[red]Invalid JSON: {e}[/red]")
            raise typer.Exit(1) from e

    result = loom.parse(loom.strip_code_fences(text))
    if not result.success:
        console.print("[red]Invalid Loom document:[/red]")
        for error in result.errors:
            console.print(f"  • {error}", markup=False)
        raise typer.Exit(1)
    return result.data


@app.command()
def check(
    path: Annotated[Path, typer.Argument(help="Workflow or plan file (JSON or Loom)")],
    show: Annotated[
        bool,
        typer.Option("--show", "-s", help="Print the normalized workflow as JSON"),
    ] = False,
) -> None:
    """Normalize a workflow and report field errors.

    Accepts a bare workflow definition or a full plan (its ``workflow``
    section is checked).

    Examples:
        weaver check workflow.json
        weaver check plan.loom --show
    """
    from weaver.schema import normalize_workflow

    data = _read_document(path)
    if isinstance(data, dict) and isinstance(data.get("workflow"), dict):
        data = data["workflow"]

    result = normalize_workflow(data)
    if not result.valid or result.workflow is None:
        table = Table(title=f"Errors in {path.name}")
        table.add_column("Field", style="cyan")
        table.add_column("Problem", style="red")
        table.add_column("Fix", style="dim")
        for error in result.errors:
            table.add_row(error.field, error.message, error.fix)
        console.print(table)
        raise typer.Exit(1)

    workflow = result.workflow
    console.print(
        f"[green]✓[/green] [bold]{workflow.name}[/bold]: "
        f"{len(workflow.nodes)} nodes, {len(workflow.connections)} connection sources"
    )
    if show:
        console.print_json(json.dumps(workflow.to_api_payload()))


@app.command()
def fmt(
    path: Annotated[Path, typer.Argument(help="Plan file (JSON or Loom)")],
    output: Annotated[
        Path | None,
        typer.Option("--output", "-o", help="Write Loom text here instead of stdout"),
    ] = None,
) -> None:
    """Render a plan as Loom text.

    Examples:
        weaver fmt plan.json
        weaver fmt plan.json -o plan.loom
    """
    from weaver.schema import plan_from_payload, plan_to_loom

    text = plan_to_loom(plan_from_payload(_read_document(path)))
    if output is None:
        console.print(text, markup=False, highlight=False)
        return
    output.write_text(text + "\n", encoding="utf-8")
    console.print(f"[dim]Wrote {output}[/dim]")


@app.command()
def chat(
    message: Annotated[
        str | None,
        typer.Argument(help="Initial message (or leave empty for interactive mode)"),
    ] = None,
    model: Annotated[
        str | None,
        typer.Option("--model", "-m", help="LLM model id (default from settings)"),
    ] = None,
) -> None:
    """Interactive chat that builds n8n workflows.

    Describe the automation you want. Weaver asks follow-up questions
    until the requirements are clear, then plans, validates and creates
    the workflow on your n8n instance.

    Examples:
        weaver chat "Post new GitHub issues to #dev on Slack"
        weaver chat  # Interactive mode
    """
    asyncio.run(_chat_interactive(message, model))


def _print_result(result: Any, base_url: str) -> None:
    """Show a turn's workflow and credential outcome."""
    if result.workflow_id:
        url = f"{base_url.rstrip('/')}/workflow/{result.workflow_id}"
        title = result.plan.title if result.plan else "Workflow"
        console.print(
            Panel(
                f"[bold]{title}[/bold]\nID: {result.workflow_id}\n{url}",
                title="Workflow created",
                border_style="green",
            )
        )

    guidance = result.credential_guidance
    if guidance and guidance.missing:
        table = Table(title="Credentials to set up")
        table.add_column("Name", style="cyan")
        table.add_column("Type")
        table.add_column("Setup link", style="blue")
        links = {link.name: link.url for link in guidance.setup_links}
        for cred in guidance.missing:
            table.add_row(cred.name, cred.type, links.get(cred.name, ""))
        console.print(table)


async def _chat_interactive(initial_message: str | None, model: str | None) -> None:
    """Run interactive chat session."""
    from weaver.graph.runner import ChatMessage, TurnInvocation, TurnRunner
    from weaver.settings import TurnConfig

    config = TurnConfig.from_settings()
    if model:
        config = config.model_copy(update={"model": model})

    session_id = str(uuid.uuid4())
    runner = TurnRunner()
    history: list[ChatMessage] = []

    console.print(
        Panel(
            "[bold blue]Weaver[/bold blue]\n\n"
            "Describe the automation you want to build.\n"
            "Type [cyan]'reset'[/cyan] to start over, [cyan]'exit'[/cyan] to quit.",
            title="n8n workflow builder",
            border_style="blue",
        )
    )
    if not config.has_llm_key:
        console.print("[yellow]No LLM API key configured (set LLM_API_KEY).[/yellow]")

    pending = initial_message
    while True:
        if pending is None:
            try:
                pending = Prompt.ask("\n[bold cyan]You[/bold cyan]")
            except (KeyboardInterrupt, EOFError):
                break

        user_input, pending = pending.strip(), None
        if not user_input:
            continue
        if user_input.lower() in ("exit", "quit", "q"):
            break
        if user_input.lower() == "reset":
            await runner.reset(session_id)
            session_id = str(uuid.uuid4())
            history = []
            console.print("[dim]Started a new session.[/dim]")
            continue

        history.append(ChatMessage(role="user", content=user_input))
        console.print("[bold green]Weaver:[/bold green] ", end="")
        try:
            result = await runner.run_turn(
                TurnInvocation(session_id=session_id, message_history=history, config=config),
                on_token=lambda token: console.print(token, end="", markup=False, highlight=False),
            )
        except WeaverError as e:
            console.print()
            console.print(
                Panel(
                    f"{e}\n\n[dim]stage: {e.stage or '-'} | context: {e.context or '-'} | "
                    f"id: {e.correlation_id}[/dim]",
                    title=type(e).__name__,
                    border_style="red",
                )
            )
            continue

        console.print()
        if result.mode == "workflow" and result.reply:
            console.print(result.reply, markup=False)
        history.append(ChatMessage(role="assistant", content=result.reply))
        _print_result(result, config.platform_base_url)

    console.print("\n[dim]Chat session ended.[/dim]")


@app.command()
def version() -> None:
    """Show Weaver version information."""
    console.print(
        Panel(
            f"[bold]Weaver[/bold] v{__version__}\nConversational n8n workflow builder",
            title="Version",
            border_style="blue",
        )
    )


# Entry point for: python -m weaver.cli.main
if __name__ == "__main__":
    app()
