r"""
Command-line interface for isolation-bench.

    isolation-bench run -s duckdb,mysql -p quick
    isolation-bench run -s mysql -a write_skew -l serializable --timeout 20
    isolation-bench contract -s mysql
"""

import logging
from pathlib import Path
from typing import Annotated

import typer

__all__ = ["app", "main"]

app = typer.Typer(
    name="isolation-bench",
    help="Deterministic transaction isolation anomaly harness.",
    no_args_is_help=True,
)


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(threadName)s %(name)s: %(message)s",
    )


def _split(value: str | None) -> list[str] | None:
    if not value:
        return None
    return [item.strip() for item in value.split(",") if item.strip()]


@app.command()
def run(
    stores: Annotated[str, typer.Option("-s", "--stores", help="Stores to test (comma-separated)")] = "duckdb",
    anomalies: Annotated[
        str | None, typer.Option("-a", "--anomalies", help="Anomalies to provoke (comma-separated)")
    ] = None,
    levels: Annotated[
        str | None, typer.Option("-l", "--levels", help="Isolation levels (comma-separated)")
    ] = None,
    profile: Annotated[str, typer.Option("-p", "--profile", help="Profile: quick, standard, soak")] = "standard",
    output: Annotated[Path, typer.Option("-o", "--output", help="Output directory")] = Path("./results"),
    format_: Annotated[
        str, typer.Option("-f", "--format", help="Output format: json, csv, markdown, all")
    ] = "json",
    verbose: Annotated[bool, typer.Option("-v", "--verbose", help="Verbose output")] = False,
    timeout: Annotated[
        float | None, typer.Option("--timeout", help="Wall-clock guard in seconds per scenario")
    ] = None,
    dry_run: Annotated[bool, typer.Option("--dry-run", help="Show what would run")] = False,
) -> None:
    """Run anomaly scenarios and compare them with each store's contract."""
    from isolation_bench.adapters import AdapterRegistry
    from isolation_bench.config import get_profile
    from isolation_bench.reporting import CsvExporter, JsonExporter, MarkdownExporter, ResultCollector
    from isolation_bench.runner import OrchestratorConfig, ScenarioOrchestrator
    from isolation_bench.types import Anomaly, IsolationLevel, Status

    _configure_logging(verbose)

    try:
        run_profile = get_profile(profile)
        scenario_names = [Anomaly.parse(a).key for a in _split(anomalies) or []] or None
        level_list = [IsolationLevel.parse(level) for level in _split(levels) or []] or list(IsolationLevel)
    except ValueError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1) from None

    store_list = _split(stores) or []
    scenario_list = scenario_names or [anomaly.key for anomaly in Anomaly]

    if verbose:
        typer.echo(f"Stores: {', '.join(store_list)}")
        typer.echo(f"Profile: {run_profile.name}")
        typer.echo(f"Output: {output}")

    if dry_run:
        typer.echo("\n[DRY RUN] Would run:")
        for store_name in store_list:
            typer.echo(f"  {store_name}: {', '.join(scenario_list)}")
        typer.echo(f"  Levels: {', '.join(level.key for level in level_list)}")
        return

    connected = []
    for store_name in store_list:
        try:
            store = AdapterRegistry.create(store_name)
            store.connect()
            connected.append(store)
            if verbose:
                typer.echo(f"Connected to {store.name}")
        except Exception as e:
            typer.echo(f"Warning: Could not connect to {store_name}: {e}", err=True)

    if not connected:
        typer.echo("Error: No stores available", err=True)
        raise typer.Exit(1)

    config = OrchestratorConfig(
        profile=run_profile,
        scenarios=scenario_names,
        levels=level_list,
        timeout_override=timeout,
        verbose=verbose,
    )
    orchestrator = ScenarioOrchestrator(config=config)

    def progress(store: str, cell: str, status: str) -> None:
        if verbose:
            typer.echo(f"  [{store}] {cell}: {status}")

    if verbose:
        orchestrator.set_progress_callback(progress)

    collector = ResultCollector()
    collector.start_session(
        profile=run_profile.name,
        stores=[s.name for s in connected],
        store_versions={s.name: s.version for s in connected},
    )

    typer.echo(f"\nRunning scenarios with profile '{run_profile.name}'...")
    try:
        result = orchestrator.run(connected)
        collector.add_results(result.results)
    finally:
        collector.end_session()
        for store in connected:
            store.disconnect()

    output.mkdir(parents=True, exist_ok=True)
    session_id = collector.session.session_id

    formats_to_export = [fmt.strip() for fmt in format_.split(",")]
    if "all" in formats_to_export:
        formats_to_export = ["json", "csv", "markdown"]

    for fmt in formats_to_export:
        if fmt == "json":
            path = output / f"{session_id}.json"
            JsonExporter().export(collector, path)
            typer.echo(f"Exported JSON: {path}")
        elif fmt == "csv":
            path = output / f"{session_id}.csv"
            CsvExporter().export(collector, path)
            typer.echo(f"Exported CSV: {path}")
        elif fmt == "markdown":
            path = output / f"{session_id}.md"
            MarkdownExporter().export(collector, path)
            typer.echo(f"Exported Markdown: {path}")
        else:
            typer.echo(f"Warning: Unknown format '{fmt}'", err=True)

    counts = {status: sum(1 for r in collector.results if r.status == status) for status in Status}
    typer.echo(
        f"\nCompleted: {counts[Status.SUCCESS]} matched, {counts[Status.MISMATCH]} mismatched, "
        f"{counts[Status.FAILED]} failed, {counts[Status.TIMEOUT]} timed out, {counts[Status.SKIPPED]} skipped"
    )

    for r in collector.results:
        if not r.ok:
            typer.echo(f"  {r.store} {r.scenario}@{r.level.key}: {r.status.name} {r.error or ''}".rstrip())

    if any(not r.ok for r in collector.results):
        raise typer.Exit(1)


@app.command()
def adapters(
    action: Annotated[str, typer.Argument(help="Action: list, test")] = "list",
    name: Annotated[str | None, typer.Option("-n", "--name", help="Adapter name")] = None,
    uri: Annotated[str | None, typer.Option("--uri", help="Connection URI")] = None,
) -> None:
    """List and test store adapters."""
    from isolation_bench.adapters import AdapterRegistry

    if action == "list":
        typer.echo("Available adapters:")
        for adapter_name in AdapterRegistry.list():
            adapter_cls = AdapterRegistry.get(adapter_name)
            contract = adapter_cls.contract.name if adapter_cls else "unknown"
            typer.echo(f"  - {adapter_name} (contract: {contract})")
    elif action == "test":
        if not name:
            typer.echo("Error: --name required for test", err=True)
            raise typer.Exit(1)

        try:
            store = AdapterRegistry.create(name)
            kwargs = {"uri": uri} if uri else {}
            store.connect(**kwargs)
            typer.echo(f"Successfully connected to {store.name} (version: {store.version})")
            store.disconnect()
        except Exception as e:
            typer.echo(f"Failed to connect to {name}: {e}", err=True)
            raise typer.Exit(1) from None
    else:
        typer.echo(f"Unknown action: {action}", err=True)
        raise typer.Exit(1)


@app.command()
def contract(
    store: Annotated[str, typer.Option("-s", "--store", help="Adapter or contract name")] = "mysql",
) -> None:
    """Print the anomalies a store is expected to exhibit per isolation level."""
    from isolation_bench.adapters import AdapterRegistry
    from isolation_bench.expectations import CONTRACTS
    from isolation_bench.types import IsolationLevel

    adapter_cls = AdapterRegistry.get(store)
    selected = adapter_cls.contract if adapter_cls else CONTRACTS.get(store)
    if selected is None:
        valid = ", ".join(sorted({*AdapterRegistry.list(), *CONTRACTS}))
        typer.echo(f"Unknown store '{store}'. Valid names: {valid}", err=True)
        raise typer.Exit(1)

    typer.echo(f"Contract: {selected.name}")
    width = max(len(level.key) for level in IsolationLevel)
    typer.echo(f"{'anomaly':<20}" + "".join(f"{level.key:>{width + 2}}" for level in IsolationLevel))
    for anomaly, row in selected.matrix().items():
        cells = "".join(f"{('present' if row[level] else 'absent'):>{width + 2}}" for level in IsolationLevel)
        typer.echo(f"{anomaly.key:<20}{cells}")


def main() -> None:
    """Main entry point."""
    app()


if __name__ == "__main__":
    main()
