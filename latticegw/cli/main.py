"""latticegw command-line interface.

Commands:
    run        Start the controller and the webhook (same as ``python -m latticegw``).
    impact     Show the reconcile requests a create event of one object would emit.
    readiness  Show the readiness gate decision for one pod.
"""

from __future__ import annotations

import asyncio
import sys

import click

from latticegw.models import KIND_REGISTRY, KubeObject, LatticeGWConfig, NamespacedName, Pod
from latticegw.observability.logging import setup_logging
from latticegw.store.base import NotFoundError, ObjectStore, StoreError


def _resolve_kind(kind: str) -> type[KubeObject]:
    by_name = {cls.KIND.lower(): cls for cls in KIND_REGISTRY.values()}
    cls = by_name.get(kind.lower())
    if cls is None:
        known = ", ".join(sorted(c.KIND for c in KIND_REGISTRY.values()))
        raise click.BadParameter(f"unknown kind {kind!r}; expected one of: {known}", param_hint="KIND")
    return cls


def _parse_key(value: str, cls: type[KubeObject]) -> NamespacedName:
    if not cls.NAMESPACED:
        return NamespacedName(namespace="", name=value.rpartition("/")[2])
    return NamespacedName.parse(value)


async def collect_impact(
    store: ObjectStore, obj: KubeObject, config: LatticeGWConfig
) -> dict[str, list[NamespacedName]]:
    """Requests per controller for a create event of ``obj``."""
    from latticegw.runtime.controllers import build_controllers
    from latticegw.runtime.queue import RequestCollector

    result: dict[str, list[NamespacedName]] = {}
    for spec in build_controllers(store, config):
        collector = RequestCollector()
        for cls, handler in spec.watches:
            if type(obj) is cls:
                await handler.create(obj, collector)
        if collector.requests:
            result[spec.name] = sorted(collector.keys())
    return result


@click.group()
@click.option("--log-level", default="warning", show_default=True, help="Log level for diagnostic output.")
@click.pass_context
def cli(ctx: click.Context, log_level: str) -> None:
    """latticegw: Gateway API dependency resolution for VPC Lattice."""
    ctx.ensure_object(dict)
    ctx.obj["log_level"] = log_level


@cli.command()
def run() -> None:
    """Start the controller and webhook until interrupted."""
    from latticegw.app import main

    asyncio.run(main())


@cli.command()
@click.argument("kind")
@click.argument("key")
@click.pass_context
def impact(ctx: click.Context, kind: str, key: str) -> None:
    """Print the reconcile requests every controller would receive for KIND KEY.

    KEY is NAMESPACE/NAME (NAME alone for cluster scoped kinds).
    """
    cls = _resolve_kind(kind)
    name = _parse_key(key, cls)
    setup_logging(ctx.obj["log_level"], json_output=False)

    async def _run() -> dict[str, list[NamespacedName]]:
        from latticegw.app import load_kube_config
        from latticegw.config import load_config
        from latticegw.store.kube import KubeObjectStore

        await load_kube_config()
        store = KubeObjectStore()
        try:
            obj = await store.get(cls, name)
            return await collect_impact(store, obj, load_config())
        finally:
            await store.close()

    try:
        impacted = asyncio.run(_run())
    except NotFoundError as exc:
        click.echo(f"error: {exc}", err=True)
        sys.exit(1)
    except StoreError as exc:
        click.echo(f"error: {exc}", err=True)
        sys.exit(2)

    if not impacted:
        click.echo(f"{cls.KIND} {name}: no reconcile requests")
        return
    for controller, keys in sorted(impacted.items()):
        for request in keys:
            click.echo(f"{controller}\t{request}")


@cli.command()
@click.argument("key")
@click.pass_context
def readiness(ctx: click.Context, key: str) -> None:
    """Print whether pod KEY (NAMESPACE/NAME) needs the readiness gate."""
    pod_key = NamespacedName.parse(key)
    setup_logging(ctx.obj["log_level"], json_output=False)

    async def _run() -> tuple[Pod, bool]:
        from latticegw.app import load_kube_config
        from latticegw.config import load_config
        from latticegw.store.kube import KubeObjectStore
        from latticegw.webhook.readiness import PodReadinessGateDecider

        await load_kube_config()
        store = KubeObjectStore()
        try:
            pod = await store.get(Pod, pod_key)
            decider = PodReadinessGateDecider(store, load_config().controller.controller_name)
            return pod, await decider.requires_readiness_gate(pod)
        finally:
            await store.close()

    try:
        pod, required = asyncio.run(_run())
    except StoreError as exc:
        click.echo(f"error: {exc}", err=True)
        sys.exit(1)

    from latticegw.webhook.readiness import pod_has_readiness_gate

    if pod_has_readiness_gate(pod):
        click.echo(f"{pod_key}: readiness gate already present")
    else:
        click.echo(f"{pod_key}: readiness gate {'required' if required else 'not required'}")
