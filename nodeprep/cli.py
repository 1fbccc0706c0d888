"""Command line interface for preparing cluster nodes before and after test runs."""

from collections.abc import Callable
from pathlib import Path
from typing import NoReturn, TypeVar

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from nodeprep.classifier import is_worker
from nodeprep.exceptions import (
    ConfigurationError,
    NodeBatchError,
    NodeNotFoundError,
    NodePrepError,
    NodeStoreError,
    TaintConflictError,
)
from nodeprep.logging_config import get_logger, setup_logging
from nodeprep.models.config import NodePrepConfig
from nodeprep.models.node import Node, NodeTaint
from nodeprep.reconciler import NodeReconciler
from nodeprep.store import KubernetesNodeStore

T = TypeVar("T")

app = typer.Typer(
    name="nodeprep",
    help="Taint and label Kubernetes nodes for test setup and teardown",
    add_completion=False,
)

console = Console()
logger = get_logger(__name__)


@app.callback()
def main_callback(
    ctx: typer.Context,
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose logging"),
    log_file: str | None = typer.Option(None, "--log-file", help="Path to log file"),
    config_path: str | None = typer.Option(
        None, "--config", "-c", help="Path to YAML configuration file (default: $NODEPREP_CONFIG)"
    ),
):
    """Global options for all commands."""
    log_path = Path(log_file) if log_file else None
    setup_logging(verbose=verbose, log_file=log_path)
    logger.debug("Logging initialized")

    try:
        ctx.obj = NodePrepConfig.load(config_path) if config_path else NodePrepConfig.from_env()
    except ConfigurationError as e:
        _exit_with_error("Configuration Error", e)


def _exit_with_error(title: str, e: NodePrepError) -> NoReturn:
    logger.error(f"{title}: {e.message}")
    console.print(f"[red]{title}:[/red] {escape(e.message)}")
    if e.details:
        console.print(f"\n{escape(e.details)}")
    raise typer.Exit(code=1)


def _run(action: Callable[[], T]) -> T:
    """Run a library call, turning nodeprep errors into a printed message and exit code 1."""
    try:
        return action()
    except TaintConflictError as e:
        _exit_with_error("Taint Conflict", e)
    except NodeBatchError as e:
        _exit_with_error("Some nodes failed", e)
    except NodeNotFoundError as e:
        _exit_with_error("Not Found", e)
    except NodeStoreError as e:
        _exit_with_error("Kubernetes Error", e)
    except ConfigurationError as e:
        _exit_with_error("Configuration Error", e)


def _reconciler(ctx: typer.Context) -> NodeReconciler:
    cfg: NodePrepConfig = ctx.obj
    store = _run(
        lambda: KubernetesNodeStore.from_kubeconfig(
            cfg.kubeconfig, cfg.context, request_timeout=cfg.request_timeout
        )
    )
    return NodeReconciler(store, cfg.master_taint_key_set, max_workers=cfg.max_workers)


def _batch_timeout(ctx: typer.Context, timeout: float | None) -> float | None:
    return timeout if timeout is not None else ctx.obj.batch_timeout


def _parse_taints(values: list[str]) -> list[NodeTaint]:
    taints = []
    for value in values:
        try:
            taints.append(NodeTaint.parse(value))
        except ValueError as e:
            console.print(
                f"[red]Error:[/red] Invalid taint '{escape(value)}'. "
                f"Expected 'key=value:effect' or 'key:effect' ({escape(str(e).splitlines()[0])})"
            )
            raise typer.Exit(code=1)
    return taints


def _parse_labels(values: list[str]) -> dict[str, str]:
    labels = {}
    for value in values:
        if "=" not in value:
            console.print(
                f"[red]Error:[/red] Invalid label format: '{escape(value)}'. Expected 'key=value'"
            )
            raise typer.Exit(code=1)
        key, label_value = value.split("=", 1)
        if not key.strip():
            console.print(f"[red]Error:[/red] Label key cannot be empty: '{escape(value)}'")
            raise typer.Exit(code=1)
        labels[key.strip()] = label_value.strip()
    return labels


def _format_labels(labels: dict[str, str]) -> str:
    return ", ".join(f"{k}={v}" for k, v in sorted(labels.items()))


timeout_option = typer.Option(
    None, "--timeout", help="Seconds to wait for all nodes (default: batch_timeout from config)"
)


@app.command()
def version() -> None:
    """Show version information."""
    from nodeprep import __version__

    typer.echo(f"nodeprep version {__version__}")


@app.command("list")
def list_nodes(
    ctx: typer.Context,
    workers_only: bool = typer.Option(False, "--workers", "-w", help="Show only worker nodes"),
) -> None:
    """List cluster nodes with their role, taints and labels."""
    reconciler = _reconciler(ctx)
    nodes: list[Node] = _run(reconciler.list_workers if workers_only else reconciler.list_all)

    if not nodes:
        console.print("[yellow]No nodes found[/yellow]")
        return

    table = Table(title="Worker Nodes" if workers_only else "Cluster Nodes")
    table.add_column("Name", style="cyan")
    table.add_column("Role", style="magenta")
    table.add_column("Taints", style="yellow")
    table.add_column("Labels")

    for node in sorted(nodes, key=lambda n: n.name):
        role = "Worker" if is_worker(node, reconciler.master_taint_keys) else "Control Plane"
        taints = ", ".join(sorted(str(t) for t in node.taints))
        table.add_row(node.name, role, escape(taints), escape(_format_labels(node.labels)))

    console.print(table)
    console.print(f"\n[bold]Total nodes:[/bold] {len(nodes)}")


@app.command()
def get(
    ctx: typer.Context,
    name: str = typer.Argument(..., help="Name of the node"),
) -> None:
    """Show the taints and labels of a single node."""
    reconciler = _reconciler(ctx)
    node: Node = _run(lambda: reconciler.get(name))

    role = "Worker" if is_worker(node, reconciler.master_taint_keys) else "Control Plane"
    console.print(f"[bold cyan]Node:[/bold cyan] {node.name}")
    console.print(f"  Role: {role}")
    console.print(f"  Taints: {escape(', '.join(sorted(str(t) for t in node.taints))) or '-'}")
    console.print(f"  Labels: {escape(_format_labels(node.labels)) or '-'}")


@app.command()
def taint_workers(
    ctx: typer.Context,
    taints: list[str] = typer.Argument(..., help="Taints as key=value:effect or key:effect"),
    timeout: float | None = timeout_option,
) -> None:
    """
    Add taints to every worker node.

    Nodes carrying a master or control-plane taint are never modified. Workers that already
    have all the taints are left unchanged.
    """
    parsed = _parse_taints(taints)
    reconciler = _reconciler(ctx)
    _run(lambda: reconciler.taint_workers(parsed, timeout=_batch_timeout(ctx, timeout)))
    taint_list = escape(", ".join(map(str, parsed)))
    console.print(f"[green]✓[/green] Worker nodes tainted with {taint_list}")


@app.command()
def untaint_all(
    ctx: typer.Context,
    taints: list[str] = typer.Argument(..., help="Taints as key=value:effect or key:effect"),
    timeout: float | None = timeout_option,
) -> None:
    """Remove taints from every node, master nodes included."""
    parsed = _parse_taints(taints)
    reconciler = _reconciler(ctx)
    _run(lambda: reconciler.untaint_all(parsed, timeout=_batch_timeout(ctx, timeout)))
    taint_list = escape(", ".join(map(str, parsed)))
    console.print(f"[green]✓[/green] Removed {taint_list} from all nodes")


@app.command()
def label(
    ctx: typer.Context,
    name: str = typer.Argument(..., help="Name of the node"),
    labels: list[str] = typer.Argument(..., help="Labels as key=value"),
) -> None:
    """Add labels to a single node, overwriting existing values."""
    parsed = _parse_labels(labels)
    reconciler = _reconciler(ctx)
    node: Node = _run(lambda: reconciler.get(name))
    updated = _run(lambda: reconciler.label(node, parsed))

    if updated:
        console.print(
            f"[green]✓[/green] Labeled node '{name}' with {escape(_format_labels(parsed))}"
        )
    else:
        console.print(f"Node '{name}' already has labels {escape(_format_labels(parsed))}")


@app.command()
def label_workers(
    ctx: typer.Context,
    labels: list[str] = typer.Argument(..., help="Labels as key=value"),
    timeout: float | None = timeout_option,
) -> None:
    """Add labels to every worker node, overwriting existing values."""
    parsed = _parse_labels(labels)
    reconciler = _reconciler(ctx)
    _run(lambda: reconciler.label_workers(parsed, timeout=_batch_timeout(ctx, timeout)))
    console.print(f"[green]✓[/green] Worker nodes labeled with {escape(_format_labels(parsed))}")


@app.command()
def unlabel_all(
    ctx: typer.Context,
    keys: list[str] = typer.Argument(..., help="Keys of the labels to remove"),
    timeout: float | None = timeout_option,
) -> None:
    """Remove labels with the given keys from every node, whatever their values."""
    reconciler = _reconciler(ctx)
    _run(lambda: reconciler.unlabel_all(keys, timeout=_batch_timeout(ctx, timeout)))
    console.print(f"[green]✓[/green] Removed labels {escape(', '.join(keys))} from all nodes")


if __name__ == "__main__":
    app()
