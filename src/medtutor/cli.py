"""MedTutor CLI - Socratic Medical Education Tutor.

Command-line interface for running the API server and for tutoring
against local guideline PDFs without the browser client.

Usage:
    medtutor serve
    medtutor extract <pdf_path>
    medtutor chat <pdf_path>... --mode questions
    medtutor case <pdf_path>... --level 2
    medtutor levels
    medtutor test
"""

import logging
from pathlib import Path
from typing import List, Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markdown import Markdown
from rich.panel import Panel
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.table import Table

from medtutor.config import Settings, load_settings
from medtutor.errors import TutorError

app = typer.Typer(
    name="medtutor",
    help="Socratic medical tutor grounded in your guideline PDFs",
    add_completion=False,
)
console = Console()

CLI_USER_ID = "cli"


def setup_logging(level: str = "INFO") -> None:
    """Route log records through rich."""
    logging.basicConfig(
        level=level.upper(),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True, show_path=False)],
        force=True,
    )


def _load(config_path: Optional[str]) -> Settings:
    try:
        settings = load_settings(config_path)
    except FileNotFoundError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)
    setup_logging(settings.log_level)
    return settings


def _read_pdfs(pdf_paths: List[str]) -> List[tuple]:
    files = []
    for raw in pdf_paths:
        path = Path(raw)
        if not path.exists():
            console.print(f"[red]Error:[/red] File not found: {path}")
            raise typer.Exit(1)
        files.append((path.name, path.read_bytes()))
    return files


def _build_engine(settings: Settings, pdf_paths: List[str]):
    from medtutor.chat import TutorEngine

    engine = TutorEngine.from_settings(settings)
    if not engine.llm_configured:
        console.print("[red]Error:[/red] OPENAI_API_KEY is not set.")
        raise typer.Exit(1)

    files = _read_pdfs(pdf_paths)
    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        console=console,
        transient=True,
    ) as progress:
        progress.add_task("Indexing PDFs...", total=None)
        try:
            result = engine.ingest(CLI_USER_ID, files)
        except TutorError as e:
            console.print(f"[red]Error:[/red] {e.message}")
            raise typer.Exit(1)

    console.print(f"[dim]{result.message} ({result.chunk_count} chunks)[/dim]")
    return engine


@app.command()
def serve(
    host: Optional[str] = typer.Option(None, "--host", help="Host to bind to"),
    port: Optional[int] = typer.Option(None, "--port", "-p", help="Port to listen on"),
    config_path: Optional[str] = typer.Option(None, "--config", "-c", help="Path to config file"),
):
    """Run the HTTP API server."""
    from medtutor.web import launch

    settings = _load(config_path)
    console.print(f"[bold]Starting MedTutor API[/bold] on {host or settings.host}:{port or settings.port}{settings.api_prefix}")
    launch(host=host, port=port, settings=settings, log_config=None)


@app.command()
def extract(
    pdf_path: str = typer.Argument(..., help="Path to PDF file"),
    config_path: Optional[str] = typer.Option(None, "--config", "-c", help="Path to config file"),
):
    """Extract and chunk a PDF, then print a summary."""
    from medtutor.chunking import WindowChunker, ChunkerConfig
    from medtutor.ingest import PDFProcessor, combine_documents

    settings = _load(config_path)

    try:
        document = PDFProcessor.from_path(pdf_path).extract()
    except (FileNotFoundError, ValueError) as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)
    except TutorError as e:
        console.print(f"[red]Error:[/red] {e.message}")
        raise typer.Exit(1)

    chunker = WindowChunker(ChunkerConfig(size=settings.chunk_size, overlap=settings.chunk_overlap))
    chunks = chunker.chunk(combine_documents([document]))

    table = Table(title=document.filename)
    table.add_column("Field", style="cyan")
    table.add_column("Value", justify="right")
    table.add_row("Title", document.title or "(not set)")
    table.add_row("Author", document.author or "(not set)")
    table.add_row("Pages", f"{document.total_pages:,}")
    table.add_row("Words", f"{document.total_words:,}")
    table.add_row("Chunks", f"{len(chunks):,}")
    table.add_row("Chunk size / overlap", f"{settings.chunk_size} / {settings.chunk_overlap}")
    console.print(table)

    if not chunks:
        console.print("[yellow]No extractable text found (scanned PDF?).[/yellow]")


@app.command()
def chat(
    pdf_paths: List[str] = typer.Argument(..., help="Guideline PDFs to tutor from"),
    mode: str = typer.Option("questions", "--mode", "-m", help="questions or feedback"),
    config_path: Optional[str] = typer.Option(None, "--config", "-c", help="Path to config file"),
):
    """Start an interactive Socratic session over local PDFs."""
    from medtutor.models.tutor import ConversationMessage

    settings = _load(config_path)
    engine = _build_engine(settings, pdf_paths)

    console.print()
    console.print(Panel(
        "[bold]MedTutor Chat[/bold]\n"
        f"[dim]Mode: {mode}[/dim]\n\n"
        "Describe your reasoning and the tutor will question it.\n"
        "Type 'feedback' to switch to feedback mode, 'questions' to switch back.\n"
        "Type 'exit' or 'quit' to end the session.",
        border_style="blue",
    ))

    transcript: List[ConversationMessage] = []
    while True:
        console.print()
        try:
            text = console.input("[bold cyan]You:[/bold cyan] ").strip()
        except (KeyboardInterrupt, EOFError):
            console.print("\n[dim]Goodbye![/dim]")
            break

        if not text:
            continue
        if text.lower() in ("exit", "quit", "q"):
            console.print("[dim]Goodbye![/dim]")
            break
        if text.lower() in ("feedback", "questions"):
            mode = text.lower()
            console.print(f"[dim]Switched to {mode} mode[/dim]")
            continue

        transcript.append(ConversationMessage(role="user", content=text))
        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            console=console,
            transient=True,
        ) as progress:
            progress.add_task("Thinking...", total=None)
            try:
                reply = engine.chat(CLI_USER_ID, transcript, mode=mode)
            except TutorError as e:
                transcript.pop()
                console.print(f"[red]Error:[/red] {e.message}")
                continue

        transcript.append(reply)
        console.print()
        console.print("[bold green]Tutor:[/bold green]")
        console.print(Markdown(reply.content))


@app.command()
def case(
    pdf_paths: List[str] = typer.Argument(..., help="Guideline PDFs to build cases from"),
    level: int = typer.Option(1, "--level", "-l", min=1, max=5, help="Starting difficulty (1-5)"),
    rounds: int = typer.Option(1, "--rounds", "-r", min=1, help="Number of cases to play"),
    config_path: Optional[str] = typer.Option(None, "--config", "-c", help="Path to config file"),
):
    """Work through adaptive multi-step cases over local PDFs."""
    from medtutor.models.tutor import PerformanceRecord, StepDecision
    from medtutor.tutor import CaseSession

    settings = _load(config_path)
    engine = _build_engine(settings, pdf_paths)
    history: List[PerformanceRecord] = []
    current_level = level

    for round_number in range(1, rounds + 1):
        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            console=console,
            transient=True,
        ) as progress:
            progress.add_task("Generating case...", total=None)
            try:
                generated = engine.generate_adaptive_case(CLI_USER_ID, difficulty_level=current_level, history=history)
            except TutorError as e:
                console.print(f"[red]Error:[/red] {e.message}")
                raise typer.Exit(1)

        session = CaseSession(generated)
        console.print()
        console.print(Panel(
            f"{generated.patient_presentation}",
            title=f"Case {round_number}: {generated.title or 'Patient case'} (level {generated.difficulty_level})",
            border_style="blue",
        ))

        def evaluate(step, decision):
            return engine.evaluate_decision(
                CLI_USER_ID, generated, decision.step_number, decision.decision, decision.reasoning
            )

        while not session.is_complete:
            step = session.current()
            console.print()
            console.print(f"[bold]Step {step.step_number}: {step.title}[/bold]")
            console.print(Markdown(step.content))
            console.print(f"[cyan]{step.decision_prompt}[/cyan]")
            try:
                decision_text = console.input("[bold cyan]Decision:[/bold cyan] ").strip()
                reasoning_text = console.input("[bold cyan]Reasoning:[/bold cyan] ").strip()
            except (KeyboardInterrupt, EOFError):
                console.print("\n[dim]Case abandoned.[/dim]")
                raise typer.Exit(0)
            if not decision_text:
                continue

            decision = StepDecision(step_number=step.step_number, decision=decision_text, reasoning=reasoning_text)
            try:
                evaluation = session.submit(decision, evaluate)
            except TutorError as e:
                console.print(f"[red]Error:[/red] {e.message}")
                continue

            style = "green" if evaluation.can_proceed else "yellow"
            console.print(f"[{style}]Score: {evaluation.score:.0%}[/{style}] {evaluation.feedback}")
            for strength in evaluation.strengths:
                console.print(f"  [green]+[/green] {strength}")
            for gap in evaluation.gaps:
                console.print(f"  [yellow]-[/yellow] {gap}")
            if not evaluation.can_proceed:
                console.print("[yellow]Revisit this step before moving on.[/yellow]")

        summary = session.summary()
        console.print()
        console.print(Panel(
            f"[bold]Aggregate score:[/bold] {summary['aggregateScore']:.0%}\n\n"
            f"[bold]Correct approach[/bold]\n{summary['correctApproach']}\n\n"
            "[bold]Key learning points[/bold]\n"
            + "\n".join(f"- {p}" for p in summary["keyLearningPoints"]),
            title="Case complete",
            border_style="green",
        ))

        history.append(session.to_performance_record())
        current_level = generated.difficulty_level


@app.command()
def levels():
    """List difficulty levels for adaptive cases."""
    from medtutor.prompts.system import DIFFICULTY_DESCRIPTIONS
    from medtutor.tutor import steps_for_level

    table = Table(title="Difficulty Levels")
    table.add_column("Level", style="cyan", justify="right")
    table.add_column("Steps", justify="right")
    table.add_column("Description")

    for lvl, description in DIFFICULTY_DESCRIPTIONS.items():
        table.add_row(str(lvl), str(steps_for_level(lvl)), description)

    console.print(table)


@app.command()
def profiles():
    """List available topic profiles."""
    from medtutor.prompts.system import PROFILES

    table = Table(title="Available Topics")
    table.add_column("Topic ID", style="cyan")
    table.add_column("Name", style="green")
    table.add_column("Description")

    for key, info in PROFILES.items():
        table.add_row(key, info["name"], info["description"])

    console.print(table)
    console.print("\n[dim]Set topic in config/tutor.yaml or MEDTUTOR_TOPIC[/dim]")


@app.command()
def test(
    config_path: Optional[str] = typer.Option(None, "--config", "-c", help="Path to config file"),
):
    """Test the LLM connection."""
    from medtutor.chat import TutorEngine

    settings = _load(config_path)
    console.print("[bold]Testing LLM connection...[/bold]")

    engine = TutorEngine.from_settings(settings)
    result = engine.test_connection()

    if result["status"] == "connected":
        console.print("[green]Connected![/green]")
        console.print(f"  Base URL: {result['base_url']}")
        console.print(f"  Model: {result['configured_model']}")
        if result.get("available_models"):
            console.print(f"  Available models: {', '.join(result['available_models'][:5])}")
    else:
        console.print("[red]Connection failed![/red]")
        console.print(f"  Base URL: {result['base_url']}")
        console.print(f"  Error: {result.get('error', 'Unknown error')}")
        console.print("\n[yellow]Check OPENAI_API_KEY (and OPENAI_BASE_URL for local servers).[/yellow]")


if __name__ == "__main__":
    app()
