# src/kubeboot/cli/app.py
from pathlib import Path
from typing import Optional

import typer

from kubeboot.addons.ensure import build_addons_manifest
from kubeboot.addons.manifest import AddonsError
from kubeboot.config.loader import ConfigError, load_config
from kubeboot.installer.install import install as run_install
from kubeboot.installer.pipeline import StepError
from kubeboot.logging.log import init_logging
from kubeboot.observers.dispatcher import EventBus
from kubeboot.observers.jsonfile import JsonFileObserver
from kubeboot.observers.logger import LoggerObserver
from kubeboot.ssh.connection import Connector
from kubeboot.state import DEFAULT_WORKDIR, ClusterContext, State
from kubeboot.templates.kubeadm import kubeadm_config


app = typer.Typer(help="kubeboot: bootstrap a kubeadm cluster over SSH")


def _load(config: Path):
    try:
        return load_config(config)
    except ConfigError as exc:
        typer.echo(str(exc), err=True)
        raise typer.Exit(code=2)


@app.command()
def install(
    config: Path = typer.Argument(..., help="Cluster config YAML"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose console output"),
    workdir: str = typer.Option(DEFAULT_WORKDIR, "--workdir", help="Remote working directory (relative to SSH home)"),
    log_dir: Optional[Path] = typer.Option(None, "--log-dir", help="Directory for run logs (default ~/.kubeboot/logs)"),
    connect_attempts: int = typer.Option(3, "--connect-attempts", help="SSH connection attempts per host"),
):
    """
    Full bootstrap:
      1) prerequisites + kubeadm configs on all control-plane hosts
      2) kubeadm init on the leader, CA distribution, control-plane join
      3) kube-proxy, machine-controller, CNI, addons
      4) worker MachineDeployments and a join token
    """
    logger, run_id, log_path = init_logging(base_dir=log_dir, verbose=verbose)
    cluster = _load(config)

    bus = EventBus(observers=[
        LoggerObserver(logger),
        JsonFileObserver(log_path.with_suffix(".jsonl")),
    ])
    state = State(
        context=ClusterContext(cluster=cluster, verbose=verbose, workdir=workdir),
        connector=Connector(attempts=connect_attempts),
    )

    try:
        run_install(state, bus=bus, run_id=run_id)
    except StepError as exc:
        logger.error("Installation failed at step '%s': %s", exc.step, exc.cause)
        typer.echo(f"\nInstallation failed at step '{exc.step}'. See {log_path}", err=True)
        raise typer.Exit(code=1)

    typer.echo("\nCluster provisioned. Join additional nodes with:")
    typer.echo(f"  {state.join_command}")


@app.command("render-addons")
def render_addons(
    config: Path = typer.Argument(..., help="Cluster config YAML"),
    verbose: bool = typer.Option(False, "--verbose", "-v"),
):
    """Print the combined, labelled addons manifest without touching any host."""
    cluster = _load(config)
    if not cluster.addons.path:
        typer.echo("addons.path is not set in the config", err=True)
        raise typer.Exit(code=2)

    state = State(context=ClusterContext(cluster=cluster, verbose=verbose))
    try:
        typer.echo(build_addons_manifest(state), nl=False)
    except AddonsError as exc:
        typer.echo(str(exc), err=True)
        raise typer.Exit(code=1)


@app.command("kubeadm-config")
def kubeadm_config_cmd(
    config: Path = typer.Argument(..., help="Cluster config YAML"),
    host: int = typer.Option(0, "--host", help="Index of the control-plane host"),
):
    """Print the kubeadm config generated for one host."""
    cluster = _load(config)
    if not 0 <= host < len(cluster.hosts):
        typer.echo(f"host index {host} out of range (0..{len(cluster.hosts) - 1})", err=True)
        raise typer.Exit(code=2)

    ctx = ClusterContext(cluster=cluster)
    typer.echo(kubeadm_config(ctx, cluster.hosts[host]), nl=False)


def main() -> None:
    app()


if __name__ == "__main__":
    main()
