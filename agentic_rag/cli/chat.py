"""Interactive multi-turn chat over one session."""

import asyncio
from pathlib import Path
from typing import Annotated, Optional

import typer
from rich.prompt import Prompt

from agentic_rag.agent.orchestrator import WorkflowOrchestrator
from agentic_rag.cli.session import (
    check_credentials,
    close_session,
    configure_logging,
    console,
    drive_human_loop,
    open_session,
    render_outcome,
    render_stages,
)
from config.settings import get_settings

HELP_TEXT = (
    "Commands: [bold]/files PATH...[/bold] index documents, [bold]/stages[/bold] show stages, "
    "[bold]/log[/bold] show session log, [bold]/new[/bold] new session, [bold]/quit[/bold] exit"
)


async def _chat(orchestrator: WorkflowOrchestrator) -> None:
    # A session saved while suspended resumes at its pending decision
    await drive_human_loop(orchestrator)

    while True:
        line = Prompt.ask("[bold cyan]You[/bold cyan]").strip()
        if not line:
            continue
        if line in ("/quit", "/exit"):
            return
        if line == "/help":
            console.print(HELP_TEXT)
        elif line == "/stages":
            render_stages(orchestrator)
        elif line == "/log":
            for entry in orchestrator.log.lines():
                console.print(f"[dim]{entry}[/dim]")
        elif line == "/new":
            orchestrator.new_session()
            console.print("[dim]Started a new session.[/dim]")
        elif line.startswith("/files"):
            paths = [Path(p) for p in line.split()[1:]]
            if not paths:
                console.print("[red]Usage: /files PATH...[/red]")
                continue
            with console.status("[bold green]Processing documents..."):
                summary = await orchestrator.ingest_files(paths)
            if summary["error"]:
                console.print(f"[bold red]Document processing failed:[/bold red] {summary['error']}")
            else:
                console.print(f"Indexed {summary['chunks_stored']} chunks.")
        else:
            with console.status("[bold green]Thinking..."):
                await orchestrator.submit_query(line)
            await drive_human_loop(orchestrator)
            render_outcome(orchestrator)


def chat(
    session: Annotated[
        Optional[Path],
        typer.Option("--session", "-s", help="Session file to resume and save"),
    ] = None,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Enable verbose logging"),
    ] = False,
):
    """Start an interactive chat; follow-up questions use the conversation so far."""
    configure_logging(verbose)

    settings = get_settings()
    check_credentials(settings)

    orchestrator = open_session(settings, session)
    console.print(HELP_TEXT)
    try:
        asyncio.run(_chat(orchestrator))
    except (KeyboardInterrupt, EOFError):
        console.print()
    close_session(orchestrator, session)
