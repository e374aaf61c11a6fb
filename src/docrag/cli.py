"""Command line interface for DocRAG."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import List, NoReturn, Optional

import typer
from rich.console import Console
from rich.table import Table

from docrag.config import AppConfig
from docrag.errors import DocRagError
from docrag.index.snapshot import SQLiteSnapshot
from docrag.service import RagService


console = Console()
app = typer.Typer(help="DocRAG - ask questions about your documents")


def _setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(level=level, format="[%(levelname)s] %(message)s")


def _ensure_db_parent(db_path: Path) -> None:
    db_path.parent.mkdir(parents=True, exist_ok=True)


def _load_config(db: Optional[Path], **overrides) -> AppConfig:
    return AppConfig.from_env(db_path=db, **overrides)


def _open_service(config: AppConfig, resolved_db: Path) -> RagService:
    service = RagService.from_config(config)
    if resolved_db.exists():
        snapshot = SQLiteSnapshot(resolved_db)
        try:
            snapshot.load(service.store)
        finally:
            snapshot.close()
    return service


def _fail(exc: DocRagError) -> NoReturn:
    console.print(f"[red]Error:[/red] {exc}")
    raise typer.Exit(code=1)


@app.command()
def ingest(
    inputs: List[Path] = typer.Argument(
        ..., help="Files or directories to ingest.", resolve_path=True
    ),
    db: Path = typer.Option(None, "--db", help="Snapshot database path"),
    chunk_chars: int = typer.Option(None, help="Chunk size in characters"),
    overlap: int = typer.Option(None, help="Chunk overlap in characters"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose logging"),
) -> None:
    """Ingest documents and save them to the snapshot database."""
    _setup_logging(verbose)
    try:
        config = _load_config(db, chunk_chars=chunk_chars, overlap=overlap).validate()
        resolved_db = config.resolve_db_path(Path.cwd())
        _ensure_db_parent(resolved_db)
        service = _open_service(config, resolved_db)
    except DocRagError as exc:
        _fail(exc)

    try:
        console.print(f"Ingesting into [bold]{resolved_db}[/bold]...")
        stats = service.ingest_paths(inputs)
        if not stats.processed_files:
            console.print("[yellow]No supported documents found.[/yellow]")
            return

        snapshot = SQLiteSnapshot(resolved_db)
        try:
            snapshot.save(service.store)
        finally:
            snapshot.close()
        console.print(
            f"Ingested: {stats.ingested}, partial: {stats.partial}, "
            f"skipped: {stats.skipped}, failed: {stats.failed}, chunks: {stats.chunks}"
        )
    finally:
        service.close()


@app.command()
def search(
    query: str = typer.Argument(..., help="Query text"),
    db: Path = typer.Option(None, "--db", help="Snapshot database path"),
    top_k: int = typer.Option(None, help="Number of results to display"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose logging"),
) -> None:
    """Show the chunks most similar to a query."""
    _setup_logging(verbose)
    try:
        config = _load_config(db, top_k=top_k)
        resolved_db = config.resolve_db_path(Path.cwd())
        if not resolved_db.exists():
            raise typer.BadParameter(f"Database not found: {resolved_db}")
        service = _open_service(config, resolved_db)
    except DocRagError as exc:
        _fail(exc)

    try:
        results = service.search(query)
    except DocRagError as exc:
        _fail(exc)
    finally:
        service.close()

    if not results:
        console.print("[yellow]No matches found.[/yellow]")
        return

    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("Score")
    table.add_column("Source")
    table.add_column("Chunk")
    table.add_column("Snippet")

    for result in results:
        snippet = result.chunk.content.replace("\n", " ")
        table.add_row(
            f"{result.score:.4f}", result.chunk.source, str(result.chunk.chunk_index), snippet[:180]
        )

    console.print(table)


@app.command()
def ask(
    query: str = typer.Argument(..., help="Question to answer"),
    db: Path = typer.Option(None, "--db", help="Snapshot database path"),
    top_k: int = typer.Option(None, help="Number of context chunks"),
    show_sources: bool = typer.Option(True, help="List the chunks used as context"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose logging"),
) -> None:
    """Answer a question grounded in the ingested documents."""
    _setup_logging(verbose)
    try:
        config = _load_config(db, top_k=top_k)
        service = _open_service(config, config.resolve_db_path(Path.cwd()))
    except DocRagError as exc:
        _fail(exc)

    try:
        answer = service.ask(query)
    except DocRagError as exc:
        _fail(exc)
    finally:
        service.close()

    console.print(answer.text)
    if show_sources and answer.sources:
        console.print("\n[bold]Sources[/bold]")
        for item in answer.sources:
            console.print(f"  {item.score:.4f}  {item.chunk.source} #{item.chunk.chunk_index}")


@app.command()
def stats(
    db: Path = typer.Option(None, "--db", help="Snapshot database path"),
) -> None:
    """Show what the snapshot database contains."""
    config = _load_config(db)
    resolved_db = config.resolve_db_path(Path.cwd())
    if not resolved_db.exists():
        console.print("[yellow]Database not found, nothing ingested yet.[/yellow]")
        return

    snapshot = SQLiteSnapshot(resolved_db)
    try:
        store = snapshot.load()
    finally:
        snapshot.close()
    info = store.get_stats()
    console.print(
        f"Documents: {info['document_count']}, chunks: {info['chunk_count']}, "
        f"dimension: {info['dimension']}"
    )


@app.command()
def web(
    host: str = typer.Option("127.0.0.1", help="Host interface"),
    port: int = typer.Option(8000, help="Server port"),
    db: Path = typer.Option(None, "--db", help="Snapshot database path"),
) -> None:
    """Start the HTTP API."""
    import uvicorn

    from docrag.web.app import create_app

    _setup_logging(False)
    config = _load_config(db)
    resolved_db = config.resolve_db_path(Path.cwd())
    try:
        service = _open_service(config, resolved_db)
    except DocRagError as exc:
        _fail(exc)

    console.print(f"Starting DocRAG API on http://{host}:{port} ({len(service.store)} chunks loaded)")
    try:
        uvicorn.run(create_app(service), host=host, port=port, reload=False, log_level="info")
    finally:
        service.close()
