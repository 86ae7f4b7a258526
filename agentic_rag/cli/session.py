"""Shared CLI helpers: logging, credentials, session files and rendering."""

import logging
from pathlib import Path

import typer
from rich.console import Console
from rich.panel import Panel
from rich.prompt import Prompt
from rich.table import Table
from rich.text import Text

from agentic_rag.agent.orchestrator import WorkflowOrchestrator
from agentic_rag.agent.snapshot import read_session, save_session
from agentic_rag.models.conversation import ConversationTurn
from agentic_rag.models.decision import PendingHumanDecision
from agentic_rag.models.enums import AgentStatus, RemedialAction, Role, WorkflowPhase
from agentic_rag.oracle.langchain_oracle import LangChainOracle
from config.settings import Settings

console = Console()
logger = logging.getLogger(__name__)

STATUS_COLORS = {
    AgentStatus.IDLE: "dim",
    AgentStatus.RUNNING: "yellow",
    AgentStatus.COMPLETED: "green",
    AgentStatus.FAILED: "red",
    AgentStatus.SKIPPED: "dim",
}

ACTION_LABELS = {
    RemedialAction.REFINE_QUERY: "Refine the query with feedback",
    RemedialAction.SEARCH_WEB: "Enhance the answer with web search",
    RemedialAction.ADD_CONTEXT: "Add context",
    RemedialAction.MANUAL_IMPROVEMENT: "Improve manually",
    RemedialAction.ACCEPT_RESPONSE: "Accept the current answer",
}


def configure_logging(verbose: bool) -> None:
    if verbose:
        logging.basicConfig(level=logging.INFO)
    else:
        logging.basicConfig(level=logging.WARNING)


def check_credentials(settings: Settings) -> None:
    """Exit early when the configured provider has no API key."""
    provider = settings.agentic_rag_llm_provider
    if provider == "anthropic" and not settings.anthropic_api_key:
        console.print(
            "[bold red]ANTHROPIC_API_KEY not set.[/bold red]\n"
            "Export your API key: export ANTHROPIC_API_KEY='sk-ant-...'"
        )
        raise typer.Exit(1)
    if provider == "google" and not settings.google_api_key:
        console.print(
            "[bold red]GOOGLE_API_KEY not set.[/bold red]\n"
            "Export your API key: export GOOGLE_API_KEY='...'"
        )
        raise typer.Exit(1)


def open_session(settings: Settings, session_path: Path | None) -> WorkflowOrchestrator:
    """Restore the session stored at ``session_path``, or start a fresh one."""
    oracle = LangChainOracle(settings)
    if session_path is not None:
        snapshot = read_session(session_path)
        if snapshot is not None:
            console.print(f"[dim]Resumed session from {session_path}[/dim]")
            return WorkflowOrchestrator.restore(snapshot, oracle, settings)
    return WorkflowOrchestrator(oracle, settings)


def close_session(orchestrator: WorkflowOrchestrator, session_path: Path | None) -> None:
    if session_path is not None:
        save_session(orchestrator.snapshot(), session_path)
        console.print(f"[dim]Session saved to {session_path}[/dim]")


def render_stages(orchestrator: WorkflowOrchestrator) -> None:
    table = Table(title="Agent Stages")
    table.add_column("Stage", style="bold")
    table.add_column("Status")
    table.add_column("Last Output", overflow="fold")
    for record in orchestrator.registry.records():
        color = STATUS_COLORS[record.status]
        table.add_row(record.name, f"[{color}]{record.status.value}[/{color}]", record.last_output or "")
    console.print(table)


def render_turn(turn: ConversationTurn) -> None:
    """Print a model turn with its document and web sources."""
    is_error = turn.id.startswith("error-")
    color = "red" if is_error else "green"

    header = Text()
    header.append("Agentic RAG", style="bold")
    console.print()
    console.print(Panel(turn.text, title=header, border_style=color, padding=(1, 2)))

    if turn.retrieved_chunks:
        files = sorted({c.source_file for c in turn.retrieved_chunks})
        console.print(f"[bold]Document sources:[/bold] {', '.join(files)}")
    for i, source in enumerate(turn.sources, 1):
        console.print(f"  [{i}] {source.title} - {source.uri}")


def render_decision(decision: PendingHumanDecision, threshold: int) -> None:
    header = Text()
    header.append("Low confidence draft", style="bold")
    header.append("  Confidence: ", style="dim")
    header.append(f"{decision.confidence}% (< {threshold}%)", style="bold yellow")

    console.print()
    console.print(Panel(decision.current_response, title=header, border_style="yellow", padding=(1, 2)))
    console.print(f"[bold]Why:[/bold] {decision.justification}")
    console.print(f"[dim]Refined query: {decision.refined_query}[/dim]")


def prompt_action(decision: PendingHumanDecision) -> tuple[RemedialAction | None, str | None]:
    """Ask the user how to continue. Returns (None, None) to dismiss."""
    actions = [a for a in RemedialAction if a in decision.available_actions]
    for i, action in enumerate(actions, 1):
        console.print(f"  {i}. {ACTION_LABELS[action]}")
    console.print(f"  {len(actions) + 1}. Dismiss")

    choices = [str(i) for i in range(1, len(actions) + 2)]
    choice = int(Prompt.ask("Choose an action", choices=choices, default=str(len(actions) + 1)))
    if choice > len(actions):
        return None, None

    action = actions[choice - 1]
    feedback = None
    if action == RemedialAction.REFINE_QUERY:
        feedback = Prompt.ask("What was wrong with the answer?")
    return action, feedback


async def drive_human_loop(orchestrator: WorkflowOrchestrator) -> None:
    """Prompt for remedial actions until the pass completes, fails or is dismissed."""
    while orchestrator.phase == WorkflowPhase.AWAITING_HUMAN_INPUT:
        decision = orchestrator.pending_decision
        render_decision(decision, orchestrator.confidence_threshold)
        action, feedback = prompt_action(decision)
        if action is None:
            orchestrator.dismiss_decision()
            console.print("[dim]Draft dismissed.[/dim]")
            return
        if action == RemedialAction.REFINE_QUERY and not (feedback and feedback.strip()):
            console.print("[red]Feedback is required to refine the query.[/red]")
            continue
        with console.status("[bold green]Working..."):
            await orchestrator.resolve_decision(action, feedback)


def render_outcome(orchestrator: WorkflowOrchestrator) -> None:
    last = orchestrator.ledger.last(Role.MODEL)
    if orchestrator.phase in (WorkflowPhase.COMPLETED, WorkflowPhase.FAILED) and last is not None:
        render_turn(last)
