"""Konverge command-line interface.

    konverge run                       -- start the reconcile service
    konverge plan -d ./manifests       -- show what the next pass would do
    konverge manifests -d ./manifests  -- list identities found on disk
"""

from __future__ import annotations

import asyncio

import click
from tabulate import tabulate

from konverge.errors import KonvergeError
from konverge.models.config import ApplyMode
from konverge.models.results import PlannedAction
from konverge.observability.logging import setup_logging

_directory_option = click.option(
    "--directory",
    "-d",
    required=True,
    type=click.Path(exists=True, file_okay=False),
    help="Manifest root directory.",
)


def _plan_rows(actions: list[PlannedAction]) -> list[list[str]]:
    return [
        [
            a.operation.value,
            a.identity.api_version,
            a.identity.kind,
            a.identity.namespace or "-",
            a.identity.name,
            a.plural,
        ]
        for a in sorted(actions, key=lambda a: (a.operation.value, str(a.identity)))
    ]


@click.group()
@click.option("--log-level", default="warning", type=click.Choice(["debug", "info", "warning", "error"]))
def cli(log_level: str) -> None:
    """Konverge - drive a cluster toward the manifests in a directory."""
    setup_logging(log_level, json=False)


@cli.command()
def run() -> None:
    """Run the reconcile service (configured from KONVERGE_* variables)."""
    from konverge.app import main

    asyncio.run(main())


@cli.command()
@_directory_option
@click.option(
    "--mode",
    type=click.Choice([m.value for m in ApplyMode]),
    default=ApplyMode.ALWAYS_UPDATE.value,
    show_default=True,
)
def plan(directory: str, mode: str) -> None:
    """Show the create/update/delete calls a pass would issue.  Applies nothing."""

    async def _plan() -> list[PlannedAction]:
        from konverge.cluster.kubernetes import KubernetesCluster
        from konverge.reconcile.engine import Reconciler
        from konverge.state.live import collect_live_state
        from konverge.state.manifests import load_manifests

        cluster = await KubernetesCluster.connect()
        try:
            live = await collect_live_state(cluster)
            desired = load_manifests(directory)
            return Reconciler(cluster, mode=ApplyMode(mode)).plan(live.resources, desired, live.kind_index)
        finally:
            await cluster.close()

    try:
        actions = asyncio.run(_plan())
    except KonvergeError as exc:
        raise click.ClickException(str(exc)) from exc

    if not actions:
        click.echo("Nothing to do.")
        return
    headers = ["ACTION", "API VERSION", "KIND", "NAMESPACE", "NAME", "RESOURCE"]
    click.echo(tabulate(_plan_rows(actions), headers=headers))


@cli.command()
@_directory_option
def manifests(directory: str) -> None:
    """List the resource identities declared under a manifest directory."""
    from konverge.reconcile.plurals import resource_name_for_kind
    from konverge.state.manifests import load_manifests

    try:
        desired = load_manifests(directory)
    except KonvergeError as exc:
        raise click.ClickException(str(exc)) from exc

    rows = [
        [
            m.identity.api_version,
            m.identity.kind,
            m.identity.namespace or "-",
            m.identity.name,
            resource_name_for_kind(m.identity.kind),
            m.source,
        ]
        for m in sorted(desired.values(), key=lambda m: str(m.identity))
    ]
    click.echo(tabulate(rows, headers=["API VERSION", "KIND", "NAMESPACE", "NAME", "RESOURCE", "SOURCE"]))
    click.echo(f"\n{len(rows)} resources")
