"""
Solution installer — CLI entrypoint.

Usage:
    solinstall --help
    solinstall solutions
    solinstall install ai-doc-editor
    solinstall probe ./some-repo
    solinstall env merge /workspace/.env ./repo/.env
"""

from __future__ import annotations

import json
import os
import sys
from pathlib import Path

import click

from solinstall import __version__
from solinstall.core.observability.logging_config import resolve_level, setup_logging


@click.group()
@click.version_option(version=__version__, prog_name="solinstall")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output (live build logs).")
@click.option("--quiet", "-q", is_flag=True, help="Suppress non-essential output.")
@click.option("--debug", is_flag=True, help="Enable debug logging (very verbose).")
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(exists=False),
    default=None,
    help="Path to solutions.yml (default: SOLINSTALL_REGISTRY_FILE or built-in).",
)
@click.option(
    "--workspace",
    "-w",
    "workspace_root",
    type=click.Path(file_okay=False),
    default=None,
    help="Workspace root (default: SOLINSTALL_WORKSPACE_ROOT or /workspace).",
)
@click.pass_context
def cli(
    ctx: click.Context,
    verbose: bool,
    quiet: bool,
    debug: bool,
    config_path: str | None,
    workspace_root: str | None,
) -> None:
    """Solution installer — provision repositories as running containers."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["quiet"] = quiet
    ctx.obj["debug"] = debug
    ctx.obj["config_path"] = Path(config_path) if config_path else None
    ctx.obj["workspace_root"] = Path(workspace_root) if workspace_root else None

    setup_logging(
        level=resolve_level(debug=debug, verbose=verbose, quiet=quiet),
        log_file=os.environ.get("SOLINSTALL_LOG_FILE"),
        log_file_level=os.environ.get("SOLINSTALL_LOG_FILE_LEVEL"),
        quiet_third_party=not debug,
    )


def _load_config(ctx: click.Context):  # type: ignore[no-untyped-def]
    """Resolve settings and registry, exiting with a message on bad config."""
    from solinstall.core.config.registry import ConfigError
    from solinstall.core.config.settings import load_settings
    from solinstall.core.use_cases.install import resolve_registry

    try:
        settings = load_settings(workspace_root=ctx.obj.get("workspace_root"))
        registry = resolve_registry(ctx.obj.get("config_path"), settings)
    except ConfigError as e:
        click.secho(f"❌ {e}", fg="red")
        sys.exit(1)
    return settings, registry


@cli.command()
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def solutions(ctx: click.Context, as_json: bool) -> None:
    """List installable solutions."""
    _, registry = _load_config(ctx)

    entries = [registry.get(i) for i in registry.identifiers()]
    if as_json:
        click.echo(json.dumps(
            [s.model_dump(mode="json") for s in entries],
            indent=2,
        ))
        return

    click.secho(f"\n📦 Solutions: {len(entries)}", fg="cyan", bold=True)
    for s in entries:
        click.echo(f"   • {s.identifier} [{s.install_kind.value}]  → :{s.port}  ({s.repo_url})")
    click.echo()


@cli.command()
@click.argument("solution")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def install(ctx: click.Context, solution: str, as_json: bool) -> None:
    """Clone, configure, build and run SOLUTION."""
    from solinstall.core.use_cases.install import install_solution

    settings, registry = _load_config(ctx)
    result = install_solution(solution, registry=registry, settings=settings)

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        sys.exit(0 if result.ok else 1)

    if result.ok:
        assert result.outcome is not None
        click.secho(f"✅ {solution} installed", fg="green", bold=True)
        click.echo(f"   Running at http://localhost:{result.outcome.port}")
        if result.outcome.strategy:
            click.echo(f"   Strategy: {result.outcome.strategy}")
        return

    click.secho(f"❌ {result.error}", fg="red")
    if result.stage:
        click.echo(f"   Stage:   {result.stage}")
    if result.command:
        click.echo(f"   Command: {result.command}")
    sys.exit(1)


@cli.command()
@click.argument("path", type=click.Path(exists=True, file_okay=False))
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
def probe(path: str, as_json: bool) -> None:
    """Show how the repository at PATH would be built."""
    from solinstall.core.engine.strategy import select_strategy
    from solinstall.core.services.structure_probe import probe_repository

    structure = probe_repository(Path(path))
    strategy = select_strategy(structure)

    if as_json:
        click.echo(json.dumps({**structure.to_dict(), "strategy": strategy.value}, indent=2))
        return

    click.secho(f"\n🔍 {Path(path).resolve()}", fg="cyan", bold=True)
    click.echo(f"   Compose file:     {structure.compose_file or '—'}")
    click.echo(f"   Root Dockerfile:  {'yes' if structure.has_root_dockerfile else 'no'}")
    click.echo(f"   Dockerfile dirs:  {', '.join(structure.dockerfiles) or '—'}")
    click.echo(f"   Service dirs:     {', '.join(structure.subdirectories) or '—'}")
    click.secho(f"   Strategy:         {strategy.value}", bold=True)
    click.echo()


@cli.group()
def env() -> None:
    """Environment file commands."""


@env.command("merge")
@click.argument("root_env", type=click.Path(dir_okay=False))
@click.argument("local_env", type=click.Path(dir_okay=False))
@click.option(
    "--mode",
    type=click.Choice(["build-args", "file"]),
    default="file",
    show_default=True,
    help="Render as docker build args or as an env file.",
)
@click.option("--output", "-o", type=click.Path(dir_okay=False), default=None,
              help="Write the result here instead of stdout.")
def env_merge(root_env: str, local_env: str, mode: str, output: str | None) -> None:
    """Merge ROOT_ENV defaults into LOCAL_ENV (local non-empty values win)."""
    from solinstall.core.errors import EnvironmentMergeFailed
    from solinstall.core.services.env_reconciler import (
        merge_env_files,
        render_build_args,
        render_env_file,
    )

    try:
        merged = merge_env_files(Path(root_env), Path(local_env))
    except EnvironmentMergeFailed as e:
        click.secho(f"❌ {e}", fg="red")
        sys.exit(1)

    rendered = render_build_args(merged) if mode == "build-args" else render_env_file(merged)
    if output:
        Path(output).write_text(rendered, encoding="utf-8")
        click.secho(f"✅ Wrote {len(merged)} variables to {output}", fg="green")
    else:
        click.echo(rendered, nl=mode == "build-args")


@cli.command()
@click.option("--host", default="127.0.0.1", help="Bind address.")
@click.option("--port", "-p", default=8000, type=int, help="Port number.")
@click.pass_context
def web(ctx: click.Context, host: str, port: int) -> None:
    """Start the install API server."""
    from solinstall.ui.web.server import create_app, run_server

    settings, registry = _load_config(ctx)
    app = create_app(settings=settings, registry=registry)

    click.echo()
    click.secho("⚡ Solution installer — API", bold=True)
    click.echo(f"   Endpoint:  http://{host}:{port}/api/solutions/install")
    click.echo(f"   Workspace: {settings.workspace_root}")
    click.echo()

    run_server(app, host=host, port=port, debug=ctx.obj.get("debug", False))


if __name__ == "__main__":
    cli()
