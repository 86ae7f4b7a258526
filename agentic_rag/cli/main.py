"""Agentic RAG CLI entry point."""

import typer

from agentic_rag.cli.ask import ask
from agentic_rag.cli.chat import chat
from agentic_rag.cli.ingest import ingest

app = typer.Typer(
    name="agentic-rag",
    help="Agentic RAG Assistant - Answer questions from your documents and the web, with human review of low-confidence answers.",
)

app.command(name="ask")(ask)
app.command(name="chat")(chat)
app.command(name="ingest")(ingest)


if __name__ == "__main__":
    app()
