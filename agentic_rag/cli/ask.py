"""CLI command for asking one question, optionally over local documents."""

import asyncio
import logging
from pathlib import Path
from typing import Annotated, Optional

import typer

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

logger = logging.getLogger(__name__)


async def _ask(orchestrator: WorkflowOrchestrator, question: str, files: list[Path]) -> None:
    if orchestrator.pending_decision is not None:
        console.print("[dim]Discarding the pending low-confidence draft from the saved session.[/dim]")
        orchestrator.dismiss_decision()

    if files:
        with console.status("[bold green]Processing documents..."):
            summary = await orchestrator.ingest_files(files)
        if summary["error"]:
            console.print(f"[bold red]Document processing failed:[/bold red] {summary['error']}")
            raise typer.Exit(1)
        console.print(
            f"Indexed {summary['files_processed']} file(s) into {summary['chunks_stored']} chunks"
            f" ({summary['files_skipped']} skipped)."
        )

    with console.status("[bold green]Thinking..."):
        await orchestrator.submit_query(question)
    await drive_human_loop(orchestrator)


def ask(
    question: Annotated[
        str,
        typer.Argument(help="Your question"),
    ],
    files: Annotated[
        Optional[list[Path]],
        typer.Option("--file", "-f", help="Document to index before answering (.txt, .md, .pdf)"),
    ] = None,
    session: Annotated[
        Optional[Path],
        typer.Option("--session", "-s", help="Session file to resume and save"),
    ] = None,
    show_stages: Annotated[
        bool,
        typer.Option("--stages", help="Show the agent stage table after answering"),
    ] = False,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Enable verbose logging"),
    ] = False,
):
    """Ask a question, searching your documents first and the web as a fallback."""
    configure_logging(verbose)

    if not question.strip():
        console.print("[bold red]Question must not be empty.[/bold red]")
        raise typer.Exit(1)

    settings = get_settings()
    check_credentials(settings)

    orchestrator = open_session(settings, session)
    asyncio.run(_ask(orchestrator, question, files or []))

    render_outcome(orchestrator)
    if show_stages:
        render_stages(orchestrator)
    close_session(orchestrator, session)
