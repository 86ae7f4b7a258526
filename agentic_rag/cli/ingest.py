"""CLI command for indexing documents into a session file."""

import asyncio
from pathlib import Path
from typing import Annotated, Optional

import typer
from rich.progress import Progress, SpinnerColumn, TextColumn

from agentic_rag.agent.orchestrator import WorkflowOrchestrator
from agentic_rag.agent.snapshot import read_session, save_session
from agentic_rag.cli.session import configure_logging, console
from agentic_rag.oracle.langchain_oracle import LangChainOracle
from config.settings import get_settings


def ingest(
    files: Annotated[
        list[Path],
        typer.Argument(help="Documents to index (.txt, .md, .pdf)"),
    ],
    session: Annotated[
        Optional[Path],
        typer.Option("--session", "-s", help="Session file to write (defaults to the configured path)"),
    ] = None,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Enable verbose logging"),
    ] = False,
):
    """Index documents into a session's knowledge base, replacing any previous documents."""
    configure_logging(verbose)

    settings = get_settings()
    session_path = session or settings.session_path

    # Indexing never calls the model, so no credentials are needed here
    oracle = LangChainOracle(settings)
    snapshot = read_session(session_path)
    if snapshot is not None:
        orchestrator = WorkflowOrchestrator.restore(snapshot, oracle, settings)
    else:
        orchestrator = WorkflowOrchestrator(oracle, settings)

    console.print("[bold]Agentic RAG Ingestion[/bold]")
    console.print(f"Files: {len(files)}")
    console.print(f"Max chunk size: {settings.agentic_rag_max_chunk_chars} characters")
    console.print()

    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        console=console,
    ) as progress:
        task = progress.add_task("Processing documents...", total=None)
        result = asyncio.run(orchestrator.ingest_files(files))
        progress.update(task, completed=True)

    console.print()
    if result["error"]:
        console.print(f"[bold red]Ingestion failed:[/bold red] {result['error']}")
        console.print("The knowledge base is now empty.")
    else:
        console.print("[bold green]Ingestion complete![/bold green]")
        console.print(f"  Files processed: {result['files_processed']}")
        console.print(f"  Files skipped (unsupported): {result['files_skipped']}")
        console.print(f"  Chunks stored: {result['chunks_stored']}")

    save_session(orchestrator.snapshot(), session_path)
    console.print(f"  Session saved to {session_path}")
    if result["error"]:
        raise typer.Exit(1)
