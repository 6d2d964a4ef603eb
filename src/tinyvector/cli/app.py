"""TinyVector CLI application entry point.

Built with `Typer <https://typer.tiangolo.com/>`_ and
`Rich <https://rich.readthedocs.io/>`_.

The index lives only in memory, so every command replays a JSON Lines
record dump into a fresh registry before doing its work.

Example usage::

    tinyvector init
    tinyvector load chunks.jsonl
    tinyvector search chunks.jsonl --text "how is auth handled?" -k 5
    tinyvector search chunks.jsonl --vector "0.1,0.2,0.3" --distance euclidean --dimension 3
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from tinyvector.cli.config import (
    DEFAULT_CONFIG_DIR,
    DEFAULT_CONFIG_FILE,
    TinyVectorConfig,
    build_registry,
    default_config_toml,
    load_config,
)
from tinyvector.cli.errors import CLIError, error_handler
from tinyvector.cli.logging_setup import setup_logging
from tinyvector.vectordb.embeddings import EmbeddingGenerator
from tinyvector.vectordb.loader import LoadReport, load_records, read_records
from tinyvector.vectordb.models import CollectionInfo, Distance, SimilarityResult
from tinyvector.vectordb.service import SearchService
from tinyvector.vectordb.shared import SharedRegistry

logger = logging.getLogger(__name__)

app = typer.Typer(
    name="tinyvector",
    help="TinyVector – in-memory vector similarity search.",
    add_completion=False,
    no_args_is_help=True,
)

_console = Console(stderr=True)
_out_console = Console()  # stdout for data output


def _version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        from tinyvector import __version__

        _console.print(f"tinyvector {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    ctx: typer.Context,
    version: bool = typer.Option(
        False,
        "--version",
        "-V",
        help="Show version and exit.",
        callback=_version_callback,
        is_eager=True,
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Enable verbose (DEBUG) output.",
    ),
    config: Optional[Path] = typer.Option(
        None,
        "--config",
        "-c",
        help="Path to configuration TOML file.",
    ),
) -> None:
    """Global options for TinyVector CLI."""
    with error_handler(_console):
        cfg = load_config(config)
    setup_logging("DEBUG" if verbose else cfg.log_level, cfg.log_file)
    ctx.obj = cfg


def _config(ctx: typer.Context) -> TinyVectorConfig:
    return ctx.obj if isinstance(ctx.obj, TinyVectorConfig) else TinyVectorConfig()


def _parse_vector(raw: str) -> list[float]:
    """Parse ``"0.1,0.2,0.3"`` (or whitespace separated) into floats."""
    parts = raw.replace(",", " ").split()
    if not parts:
        raise CLIError("--vector must contain at least one number")
    try:
        return [float(part) for part in parts]
    except ValueError as exc:
        raise CLIError(f"Invalid --vector value: {exc}") from exc


def _load(
    cfg: TinyVectorConfig,
    records: Path,
    collection: str,
    dimension: Optional[int],
    distance: Optional[Distance],
) -> tuple[SharedRegistry, LoadReport]:
    shared = build_registry(cfg)
    report = load_records(
        shared,
        read_records(records),
        collection=collection,
        dimension=dimension,
        distance=distance,
        batch_size=cfg.batch_size,
    )
    return shared, report


def _collections_table(infos: list[CollectionInfo]) -> Table:
    table = Table(title="Collections")
    table.add_column("Name", style="bold")
    table.add_column("Dimension", justify="right")
    table.add_column("Distance")
    table.add_column("Embeddings", justify="right")
    for info in infos:
        table.add_row(info.name, str(info.dimension), info.distance.value, str(info.size))
    return table


def _results_table(results: list[SimilarityResult], distance: Distance) -> Table:
    table = Table(title="Results")
    table.add_column("#", justify="right")
    table.add_column("Distance" if distance is Distance.EUCLIDEAN else "Score", justify="right")
    table.add_column("ID", style="bold")
    table.add_column("Payload", overflow="fold")
    for rank, result in enumerate(results, start=1):
        payload = result.payload if len(result.payload) <= 120 else result.payload[:117] + "..."
        table.add_row(str(rank), f"{result.score:.4f}", result.id, payload)
    return table


# ---------------------------------------------------------------------------
# init
# ---------------------------------------------------------------------------


@app.command()
def init(
    path: Optional[Path] = typer.Argument(
        None,
        help="Project directory. Defaults to current directory.",
    ),
    force: bool = typer.Option(
        False,
        "--force",
        "-f",
        help="Overwrite an existing configuration file.",
    ),
) -> None:
    """Write a default ``.tinyvector/config.toml``."""
    with error_handler(_console):
        project_dir = (path or Path.cwd()).resolve()
        config_file = project_dir / DEFAULT_CONFIG_DIR / DEFAULT_CONFIG_FILE
        if config_file.exists() and not force:
            raise CLIError(f"{config_file} already exists (use --force to overwrite)")
        config_file.parent.mkdir(parents=True, exist_ok=True)
        config_file.write_text(default_config_toml(), encoding="utf-8")
        _console.print(f"[green]Wrote {config_file}[/green]")


# ---------------------------------------------------------------------------
# load
# ---------------------------------------------------------------------------


@app.command()
def load(
    ctx: typer.Context,
    records: Path = typer.Argument(..., help="JSON Lines file of {id, vector, payload} records."),
    collection: Optional[str] = typer.Option(
        None, "--collection", help="Target collection name."
    ),
    dimension: Optional[int] = typer.Option(
        None, "--dimension", "-d", min=1, help="Collection dimension."
    ),
    distance: Optional[Distance] = typer.Option(
        None, "--distance", help="Distance metric."
    ),
) -> None:
    """Replay a record dump and report what was loaded."""
    with error_handler(_console):
        cfg = _config(ctx)
        name = collection or cfg.default_collection
        shared, report = _load(cfg, records, name, dimension, distance)
        with shared:
            infos = shared.list_collections()

        if not report.created:
            _console.print(f"[yellow]No records found in {records}.[/yellow]")
            return
        _out_console.print(_collections_table(infos))
        _console.print(
            f"Loaded {report.loaded}/{report.total} records "
            f"({report.skipped} skipped) in {report.elapsed_seconds:.2f}s"
        )


# ---------------------------------------------------------------------------
# search
# ---------------------------------------------------------------------------


@app.command()
def search(
    ctx: typer.Context,
    records: Path = typer.Argument(..., help="JSON Lines file of {id, vector, payload} records."),
    vector: Optional[str] = typer.Option(
        None, "--vector", help="Query vector, e.g. '0.1,0.2,0.3'."
    ),
    text: Optional[str] = typer.Option(
        None, "--text", "-t", help="Query text, embedded with the configured model."
    ),
    k: Optional[int] = typer.Option(
        None, "--top-k", "-k", min=1, help="Number of results."
    ),
    collection: Optional[str] = typer.Option(
        None, "--collection", help="Collection to search."
    ),
    dimension: Optional[int] = typer.Option(
        None, "--dimension", "-d", min=1, help="Collection dimension."
    ),
    distance: Optional[Distance] = typer.Option(
        None, "--distance", help="Distance metric."
    ),
    json_output: bool = typer.Option(
        False, "--json", "-j", help="Print results as JSON to stdout."
    ),
) -> None:
    """Load a record dump and run one top-k query against it."""
    with error_handler(_console):
        if (vector is None) == (text is None):
            raise CLIError("Pass exactly one of --vector or --text")

        cfg = _config(ctx)
        name = collection or cfg.default_collection
        top_k = k or cfg.top_k

        shared, report = _load(cfg, records, name, dimension, distance)
        with shared:
            if not report.created:
                raise CLIError(f"No records found in {records}")

            if text is not None:
                embedder = EmbeddingGenerator(cfg.embedding_model)
                service = SearchService(shared, embedder, collection=name, top_k=top_k)
                results = service.search(text)
            else:
                results = shared.query(name, _parse_vector(vector), top_k)

            snapshot = shared.get_collection(name)
            metric = snapshot.distance if snapshot is not None else cfg.distance

        if json_output:
            _out_console.print_json(
                json.dumps([result.model_dump() for result in results])
            )
        else:
            _out_console.print(_results_table(results, metric))
