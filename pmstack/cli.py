"""pmstack CLI - build and dry-run the patient-management topology."""

import asyncio
import json
import logging
import sys
from pathlib import Path

import click

from pmstack.config import StackSettings
from pmstack.credentials import CREDENTIAL_BACKENDS, CredentialStore, credential_store
from pmstack.engines import DryRunEngine, ProvisioningRunner
from pmstack.errors import ConfigurationError, ProvisioningError
from pmstack.models import Topology
from pmstack.topology import build_topology, load_topology_spec, patient_management_topology

credentials_option = click.option(
    "--credentials",
    "backend",
    type=click.Choice(CREDENTIAL_BACKENDS),
    default=None,
    help="Credential store (default: PMSTACK_CREDENTIAL_BACKEND or memory)",
)
spec_option = click.option(
    "--spec", "spec_path", default=None, help="Topology spec file (YAML/JSON)"
)


def _build(spec_path: str | None, backend: str | None) -> tuple[Topology, CredentialStore]:
    try:
        settings = StackSettings.from_env()
        store = credential_store(settings, backend)
        if spec_path:
            spec = load_topology_spec(spec_path)
        else:
            spec = patient_management_topology(settings)
        return build_topology(spec, settings, store), store
    except ConfigurationError as e:
        click.echo(f"Configuration error: {e}", err=True)
        sys.exit(2)


@click.group()
@click.option("-v", "--verbose", is_flag=True, help="Debug logging")
def cli(verbose):
    """pmstack - patient-management topology builder."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@cli.command()
@spec_option
@credentials_option
@click.option("--out", "out_dir", default=None, help="Directory to write the plan into")
def synth(spec_path, backend, out_dir):
    """Build the topology and emit the provisioning plan."""
    topology, _ = _build(spec_path, backend)
    plan = topology.model_dump_json(indent=2)
    if out_dir is None:
        click.echo(plan)
        return
    out = Path(out_dir)
    out.mkdir(parents=True, exist_ok=True)
    target = out / f"{topology.name}.plan.json"
    target.write_text(plan, encoding="utf-8")
    click.echo(f"Wrote {target}")


@cli.command(name="dry-run")
@spec_option
@credentials_option
@click.option(
    "--parallel",
    default=4,
    type=click.IntRange(min=1),
    help="Max resources provisioned concurrently",
)
@click.option("--teardown", is_flag=True, help="Tear the deployment down afterwards")
def dry_run(spec_path, backend, parallel, teardown):
    """Walk the plan through the dry-run engine."""
    topology, store = _build(spec_path, backend)
    runner = ProvisioningRunner(DryRunEngine(), max_parallel=parallel, credentials=store)

    async def _run():
        try:
            result = await runner.deploy(topology)
        except ProvisioningError as e:
            if teardown and e.result is not None:
                await runner.teardown(e.result)
            raise
        if teardown:
            await runner.teardown(result)
        return result

    try:
        result = asyncio.run(_run())
    except ProvisioningError as e:
        click.echo(f"Provisioning failed at {e.logical_id}: {e}", err=True)
        sys.exit(1)
    click.echo(json.dumps(result.model_dump(mode="json"), indent=2))


if __name__ == "__main__":
    cli()
