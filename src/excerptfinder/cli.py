"""Command line interface for ExcerptFinder."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import List

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from excerptfinder.config import AppConfig, RetrievalConfig
from excerptfinder.embedding.encoder import DEFAULT_DIMENSION, EmbeddingConfig, HashEmbeddingModel
from excerptfinder.engine import QueryEngine
from excerptfinder.index.indexer import Indexer
from excerptfinder.index.storage import IndexLoadError, JsonIndexStore
from excerptfinder.models import QueryResult
from excerptfinder.utils.files import iter_document_paths
from excerptfinder.web.app import app as web_app


console = Console()
app = typer.Typer(help="ExcerptFinder - extractive question answering over a local corpus")

EXIT_WORDS = {"exit", "quit"}


def _setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(level=level, format="[%(levelname)s] %(message)s")


def _resolve_index(index: Path | None) -> Path:
    config = AppConfig(index_path=index if index is not None else AppConfig().index_path)
    return config.resolve_index_path(Path.cwd())


def _load_engine(index_path: Path, config: RetrievalConfig) -> QueryEngine:
    try:
        return QueryEngine.from_path(index_path, config)
    except IndexLoadError as exc:
        raise typer.BadParameter(str(exc)) from exc


def _print_matches(result: QueryResult) -> None:
    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("Rank")
    table.add_column("Combined")
    table.add_column("Semantic")
    table.add_column("Lexical")
    table.add_column("Snippet")

    for rank, match in enumerate(result.matches, start=1):
        snippet = match.text.replace("\n", " ")
        table.add_row(
            str(rank),
            f"{match.combined_score:.4f}",
            f"{match.semantic_score:.4f}",
            f"{match.lexical_score:.4f}",
            escape(snippet[:180]),
        )

    console.print(table)


@app.command()
def index(
    inputs: List[Path] = typer.Argument(
        ..., help="PDF, .txt or .md files (or folders) to index.", resolve_path=True
    ),
    out: Path = typer.Option(None, "--out", "-o", help="Index file to write"),
    chunk_chars: int = typer.Option(AppConfig().chunk_chars, help="Chunk size in characters"),
    overlap: int = typer.Option(AppConfig().overlap, help="Chunk overlap"),
    dimension: int = typer.Option(DEFAULT_DIMENSION, help="Embedding dimension"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose logging"),
) -> None:
    """Chunk, embed and persist source documents as a local index."""
    _setup_logging(verbose)
    config = AppConfig(
        index_path=out if out is not None else AppConfig().index_path,
        chunk_chars=chunk_chars,
        overlap=overlap,
    )
    resolved_index = config.resolve_index_path(Path.cwd())

    document_paths = list(iter_document_paths(inputs))
    if not document_paths:
        console.print("[yellow]No documents found.[/yellow]")
        return

    embedder = HashEmbeddingModel(EmbeddingConfig(dimension=dimension))
    store = JsonIndexStore(resolved_index, dimension=dimension)
    indexer = Indexer(embedder, store, chunk_chars=config.chunk_chars, overlap=config.overlap)

    console.print(f"Indexing into [bold]{resolved_index}[/bold]...")
    try:
        stats = indexer.index(document_paths)
    except ValueError as exc:
        console.print(f"[red]{exc}[/red]")
        raise typer.Exit(code=1) from exc

    console.print(
        f"Chunks: {stats.chunks}, files indexed: {stats.indexed}, "
        f"skipped: {stats.skipped}, failed: {stats.failed}"
    )


@app.command()
def ask(
    question: str = typer.Argument(..., help="Question text"),
    index: Path = typer.Option(None, "--index", help="Index file path"),
    top_k: int = typer.Option(RetrievalConfig().top_k, help="Number of matches to use"),
    max_sentences: int = typer.Option(
        RetrievalConfig().max_sentences, help="Sentences in the answer"
    ),
    show_matches: bool = typer.Option(False, "--show-matches", help="Print match scores"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose logging"),
) -> None:
    """Answer a single question."""
    _setup_logging(verbose)
    try:
        config = RetrievalConfig(top_k=top_k, max_sentences=max_sentences)
    except ValueError as exc:
        raise typer.BadParameter(str(exc)) from exc
    engine = _load_engine(_resolve_index(index), config)

    result = engine.answer_query(question)
    console.print("\n[bold]Answer:[/bold]")
    console.print(result.answer, markup=False)
    if show_matches and result.matches:
        _print_matches(result)


@app.command()
def chat(
    index: Path = typer.Option(None, "--index", help="Index file path"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose logging"),
) -> None:
    """Interactive question loop. Type 'exit' to quit."""
    _setup_logging(verbose)
    engine = _load_engine(_resolve_index(index), RetrievalConfig())

    console.print(f"Local excerpt chatbot ready. Indexed chunks: {len(engine.index)}")
    console.print("Ask a question. Type 'exit' to quit.")

    while True:
        try:
            question = console.input("\n> ").strip()
        except EOFError:
            break
        if not question:
            continue
        if question.lower() in EXIT_WORDS:
            break

        result = engine.answer_query(question)
        console.print("\nAnswer:")
        console.print(result.answer, markup=False)


@app.command()
def stats(
    index: Path = typer.Option(None, "--index", help="Index file path"),
) -> None:
    """Show statistics for an index file."""
    engine = _load_engine(_resolve_index(index), RetrievalConfig())
    info = engine.stats()

    table = Table(show_header=False)
    for key, value in info.items():
        table.add_row(key, str(value))
    console.print(table)


@app.command()
def web(
    host: str = typer.Option("127.0.0.1", help="Host interface"),
    port: int = typer.Option(8000, help="Server port"),
    index: Path = typer.Option(None, "--index", help="Index file path"),
) -> None:
    """Start the HTTP question-answering service."""
    try:
        import uvicorn
    except ImportError as exc:  # pragma: no cover
        raise typer.BadParameter(
            "uvicorn is not installed. Install the web extras with \"python -m pip install '.[web]'\""
        ) from exc

    resolved_index = _resolve_index(index)
    if not resolved_index.exists():
        console.print("[yellow]Warning: index not found, questions will fail.[/yellow]")

    web_app.state.default_index = resolved_index
    console.print(
        f"Starting web interface on http://{host}:{port} (index: {resolved_index})"
    )
    uvicorn.run(
        web_app,
        host=host,
        port=port,
        reload=False,
        log_level="info",
    )
