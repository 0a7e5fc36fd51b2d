"""wavecron CLI — Typer-based command-line interface."""

from __future__ import annotations

import asyncio
import json
import signal
from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table

from wavecron import __version__

app = typer.Typer(
    name="wavecron",
    help="wavecron - cron-triggered workflow engine",
    no_args_is_help=True,
)

console = Console()

_STATUS_STYLE = {
    "success": "green",
    "failed": "red",
    "partial": "yellow",
    "running": "blue",
    "skipped": "dim",
    "pending": "dim",
}


def _version_callback(value: bool) -> None:
    if value:
        console.print(f"wavecron v{__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        None, "--version", "-v", callback=_version_callback, is_eager=True
    ),
) -> None:
    """wavecron - cron-triggered workflow engine."""


def _styled(status: str | None) -> str:
    if not status:
        return "-"
    style = _STATUS_STYLE.get(status, "white")
    return f"[{style}]{status}[/{style}]"


def _open_store():
    from wavecron.core.config.schema import Config
    from wavecron.core.store import JobStore

    config = Config.from_yaml()
    return JobStore(config.storage_path, max_runs=config.storage.max_runs)


# ════════════════════════════════════════════════════════════
# daemon — run the scheduler in the foreground
# ════════════════════════════════════════════════════════════


@app.command()
def daemon(
    verbose: bool = typer.Option(False, "--verbose", help="Debug logging"),
) -> None:
    """Run the scheduler until interrupted (SIGINT / SIGTERM)."""
    from wavecron.core.config.schema import Config
    from wavecron.core.log import setup_logging
    from wavecron.runtime import build_runtime

    config = Config.from_yaml()
    setup_logging(config.logging, verbose=verbose)
    runtime = build_runtime(config)

    async def _serve() -> None:
        stop = asyncio.Event()
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.add_signal_handler(sig, stop.set)
            except NotImplementedError:
                pass  # Windows: KeyboardInterrupt ends asyncio.run instead

        await runtime.scheduler.start()
        console.print(f"[green]wavecron scheduler running[/green] (storage: {runtime.store.root})")
        try:
            await stop.wait()
        finally:
            await runtime.scheduler.shutdown()

    asyncio.run(_serve())


# ════════════════════════════════════════════════════════════
# serve — HTTP API
# ════════════════════════════════════════════════════════════


@app.command()
def serve(
    port: int | None = typer.Option(None, "--port", "-p", help="Port number"),
    host: str | None = typer.Option(None, "--host", "-h", help="Host address"),
) -> None:
    """Start the HTTP API (uvicorn) with the scheduler running inside it."""
    import uvicorn

    from wavecron.core.config.schema import Config

    config = Config.from_yaml()
    host = host or config.api.host
    port = port or config.api.port
    console.print(f"[green]Starting wavecron API on {host}:{port}[/green]")
    uvicorn.run("wavecron.api.app:app", host=host, port=port)


# ════════════════════════════════════════════════════════════
# status — config + store info
# ════════════════════════════════════════════════════════════


@app.command()
def status() -> None:
    """Show configuration and job store status."""
    from wavecron.core.config.schema import Config
    from wavecron.core.store import JobStore

    config = Config.from_yaml()
    store = JobStore(config.storage_path, max_runs=config.storage.max_runs)
    jobs = store.load_all()

    table = Table(title="wavecron status")
    table.add_column("Key", style="cyan")
    table.add_column("Value", style="green")

    table.add_row("Version", __version__)
    table.add_row("Storage", str(store.root))
    table.add_row("Jobs", str(len(jobs)))
    table.add_row("Enabled", str(sum(1 for j in jobs if j.enabled)))
    table.add_row("Scheduler", "enabled" if config.scheduler.enabled else "disabled")

    console.print(table)


# ════════════════════════════════════════════════════════════
# cron — job management (sub-command group)
# ════════════════════════════════════════════════════════════

cron_app = typer.Typer(help="Manage cron jobs")
app.add_typer(cron_app, name="cron")


@cron_app.command("list")
def cron_list() -> None:
    """List all cron jobs."""
    from wavecron.core.cron.expression import describe, next_run

    jobs = _open_store().load_all()
    if not jobs:
        console.print("[dim]No cron jobs found.[/dim]")
        return

    table = Table(title="Cron Jobs")
    table.add_column("ID", style="cyan")
    table.add_column("Name", style="white")
    table.add_column("Schedule", style="yellow")
    table.add_column("Nodes", justify="right")
    table.add_column("Enabled", style="green")
    table.add_column("Next run", style="blue")
    table.add_column("Last run")

    for job in sorted(jobs, key=lambda j: j.created_at):
        nxt = next_run(job.schedule) if job.enabled else None
        last = job.last_run_status.value if job.last_run_status else None
        table.add_row(
            job.id,
            job.name,
            describe(job.schedule),
            str(len(job.workflow_graph.nodes)),
            str(job.enabled),
            nxt.strftime("%Y-%m-%d %H:%M") if nxt else "-",
            _styled(last),
        )

    console.print(table)


@cron_app.command("show")
def cron_show(job_id: str = typer.Argument(help="Cron job ID")) -> None:
    """Print a job definition as JSON."""
    job = _open_store().load(job_id)
    if job is None:
        console.print(f"[red]Cron job not found:[/red] {job_id}")
        raise typer.Exit(code=1)
    console.print_json(job.to_json())


@cron_app.command("add")
def cron_add(
    name: str = typer.Argument(help="Job name"),
    schedule: str = typer.Argument(help="Cron expression, e.g. '0 9 * * 1-5'"),
    command: str | None = typer.Option(
        None, "--command", "-c", help="Single shell-command node to run"
    ),
    cwd: str = typer.Option("", "--cwd", help="Working directory for --command"),
    timeout: int = typer.Option(300, "--timeout", help="Timeout (s) for --command"),
    graph: Path | None = typer.Option(
        None, "--graph", "-g", help="Workflow graph JSON file (nodes + edges)"
    ),
    disabled: bool = typer.Option(False, "--disabled", help="Create the job disabled"),
) -> None:
    """Create a cron job from a graph file or a single shell command."""
    from pydantic import ValidationError

    from wavecron.core.cron.expression import describe, is_valid
    from wavecron.core.cron.types import ShellCommandNode, WorkflowGraph

    if not is_valid(schedule):
        console.print(f"[red]Invalid cron expression:[/red] {schedule}")
        raise typer.Exit(code=1)
    if (command is None) == (graph is None):
        console.print("[red]Pass exactly one of --command or --graph[/red]")
        raise typer.Exit(code=1)

    if graph is not None:
        try:
            workflow = WorkflowGraph.model_validate(json.loads(graph.read_text(encoding="utf-8")))
        except (OSError, ValueError, ValidationError) as e:
            console.print(f"[red]Invalid workflow graph:[/red] {e}")
            raise typer.Exit(code=1)
    else:
        workflow = WorkflowGraph(
            nodes=[
                ShellCommandNode(
                    id="shell-1",
                    data={"command": command, "working_directory": cwd, "timeout": timeout},
                )
            ]
        )

    job = _open_store().create(name, schedule, not disabled, workflow)
    console.print(f"[green]Cron job created:[/green] {job.id} ({describe(schedule)})")


def _set_enabled(job_id: str, enabled: bool) -> None:
    job = _open_store().update(job_id, enabled=enabled)
    if job is None:
        console.print(f"[red]Cron job not found:[/red] {job_id}")
        raise typer.Exit(code=1)
    state = "enabled" if enabled else "disabled"
    console.print(f"[green]Cron job {state}:[/green] {job_id}")


@cron_app.command("enable")
def cron_enable(job_id: str = typer.Argument(help="Cron job ID")) -> None:
    """Enable a cron job."""
    _set_enabled(job_id, True)


@cron_app.command("disable")
def cron_disable(job_id: str = typer.Argument(help="Cron job ID")) -> None:
    """Disable a cron job."""
    _set_enabled(job_id, False)


@cron_app.command("remove")
def cron_remove(
    job_id: str = typer.Argument(help="Cron job ID to remove"),
) -> None:
    """Remove a cron job and its run history."""
    if _open_store().delete(job_id):
        console.print(f"[green]Removed cron job:[/green] {job_id}")
    else:
        console.print(f"[red]Cron job not found:[/red] {job_id}")
        raise typer.Exit(code=1)


@cron_app.command("run")
def cron_run(
    job_id: str = typer.Argument(help="Cron job ID (runs even if the job is disabled)"),
) -> None:
    """Run a job now (in this process) and print node results.

    Disabled jobs run too; only their timer is off.
    """
    from wavecron.core.config.schema import Config
    from wavecron.runtime import build_runtime

    runtime = build_runtime(Config.from_yaml())
    if runtime.store.load(job_id) is None:
        console.print(f"[red]Cron job not found:[/red] {job_id}")
        raise typer.Exit(code=1)

    run = asyncio.run(runtime.scheduler.run_now(job_id))
    if run is None:
        console.print(f"[yellow]Job did not run:[/yellow] {job_id}")
        raise typer.Exit(code=1)

    table = Table(title=f"Run {run.id}")
    table.add_column("Node", style="cyan")
    table.add_column("Status")
    table.add_column("Output / error", style="white")
    for result in run.node_results.values():
        detail = result.error or (result.output or "").strip()
        table.add_row(result.node_id, _styled(result.status.value), detail[:200])
    console.print(table)
    console.print(f"Run status: {_styled(run.status.value)}")


@cron_app.command("runs")
def cron_runs(
    job_id: str = typer.Argument(help="Cron job ID"),
    limit: int = typer.Option(20, "--limit", "-n", help="Most recent N runs"),
) -> None:
    """Show a job's run history (newest first)."""
    runs = _open_store().list_runs(job_id)
    if not runs:
        console.print("[dim]No runs recorded.[/dim]")
        return

    table = Table(title=f"Runs for {job_id}")
    table.add_column("Run", style="cyan")
    table.add_column("Started", style="dim")
    table.add_column("Duration", justify="right")
    table.add_column("Status")
    table.add_column("Nodes", justify="right")

    for run in list(reversed(runs))[:limit]:
        duration = (
            f"{(run.completed_at - run.started_at).total_seconds():.1f}s"
            if run.completed_at
            else "-"
        )
        table.add_row(
            run.id,
            run.started_at.strftime("%Y-%m-%d %H:%M:%S"),
            duration,
            _styled(run.status.value),
            str(len(run.node_results)),
        )
    console.print(table)


@cron_app.command("next")
def cron_next(expr: str = typer.Argument(help="Cron expression")) -> None:
    """Show the next fire time of an expression."""
    from wavecron.core.cron.expression import describe, next_run

    nxt = next_run(expr)
    if nxt is None:
        console.print(f"[yellow]No run within the next 48 hours:[/yellow] {expr}")
        raise typer.Exit(code=1)
    console.print(f"{describe(expr)}: next run at [cyan]{nxt.isoformat()}[/cyan]")


@cron_app.command("validate")
def cron_validate(expr: str = typer.Argument(help="Cron expression")) -> None:
    """Exit 0 if the expression is valid, 1 otherwise."""
    from wavecron.core.cron.expression import is_valid

    if is_valid(expr):
        console.print(f"[green]valid[/green] {expr}")
    else:
        console.print(f"[red]invalid[/red] {expr}")
        raise typer.Exit(code=1)
