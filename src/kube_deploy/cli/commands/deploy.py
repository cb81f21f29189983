"""Deployment commands.

This module provides the commands that resolve a config folder into a
deployment plan and either show or execute it.
"""

from typing import Annotated

import typer
from rich.table import Table

from kube_deploy.cli.context import get_cli_context
from kube_deploy.cli.shared import configure_logging, console, with_error_handling
from kube_deploy.deployment.models import EffectiveConfig, HelmChart
from kube_deploy.deployment.session import DeploymentSession

# ---------------------------------------------------------------------------
# Shared Options
# ---------------------------------------------------------------------------

ConfigFolderOption = Annotated[
    str,
    typer.Option(
        "--config-folder",
        "-c",
        help="Config folder; relative to the repository root with --config-repo",
    ),
]
ConfigRepoOption = Annotated[
    str,
    typer.Option("--config-repo", help="Git repository to clone the config from"),
]
TargetOption = Annotated[
    str,
    typer.Option("--target", "-t", help="Named target from metadata.yml to apply"),
]
KubeconfigPathOption = Annotated[
    str,
    typer.Option("--kubeconfig-path", help="Kubeconfig file to use when it exists"),
]
KubeconfigEnvOption = Annotated[
    str,
    typer.Option(
        "--kubeconfig-env",
        help="Environment variable holding a base64 encoded kubeconfig",
    ),
]
NamespaceOption = Annotated[
    str,
    typer.Option("--namespace", "-n", help="Kubernetes namespace to deploy into"),
]
ReleaseNameOption = Annotated[
    str,
    typer.Option("--release-name", help="Default helm release name"),
]
ChartOption = Annotated[
    str,
    typer.Option("--chart", help="Default helm chart name (or local chart path)"),
]
ChartRepoOption = Annotated[
    str,
    typer.Option("--chart-repo", help="Helm repository URL for --chart"),
]
ChartVersionOption = Annotated[
    str,
    typer.Option("--chart-version", help="Helm chart version for --chart"),
]
VerboseOption = Annotated[
    bool,
    typer.Option("--verbose", "-v", help="Enable debug logging"),
]


def build_start_config(
    *,
    config_folder: str,
    config_repo: str = "",
    kubeconfig_path: str = "",
    kubeconfig_env: str = "",
    namespace: str = "",
    release_name: str = "",
    chart: str = "",
    chart_repo: str = "",
    chart_version: str = "",
) -> EffectiveConfig:
    """Build the command-line layer of the effective config.

    A ``--chart`` starting with ``.`` or ``/`` is a local chart path,
    anything else a chart name.
    """
    helm: HelmChart | None = None
    if chart or chart_repo or chart_version:
        is_path = chart.startswith((".", "/"))
        helm = HelmChart(
            repo=chart_repo,
            name="" if is_path else chart,
            path=chart if is_path else "",
            version=chart_version,
        )

    return EffectiveConfig(
        config_repo=config_repo,
        config_folder=config_folder,
        kubeconfig_path=kubeconfig_path,
        kubeconfig_env=kubeconfig_env,
        namespace=namespace,
        release_name=release_name,
        helm=helm,
    )


def _chart_label(chart: HelmChart | None) -> str:
    if chart is None:
        return ""

    label = chart.path or (f"{chart.repo} {chart.name}" if chart.repo else chart.name)
    if chart.version:
        label = f"{label}@{chart.version}"
    return label


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


@with_error_handling
def deploy(
    config_folder: ConfigFolderOption,
    config_repo: ConfigRepoOption = "",
    target: TargetOption = "",
    kubeconfig_path: KubeconfigPathOption = "",
    kubeconfig_env: KubeconfigEnvOption = "",
    namespace: NamespaceOption = "",
    release_name: ReleaseNameOption = "",
    chart: ChartOption = "",
    chart_repo: ChartRepoOption = "",
    chart_version: ChartVersionOption = "",
    verbose: VerboseOption = False,
) -> None:
    """Deploy a config folder to Kubernetes.

    This command:
    - Resolves metadata.yml, global vars and the selected target
    - Copies the folder into a working copy with env vars interpolated
    - Creates the namespace
    - Applies each folder in order with helm, kustomize or kubectl
    - Turns ejson files into Kubernetes secrets

    Examples:
        kube-deploy deploy -c ./deploy -n my-app
        kube-deploy deploy -c apps/web --config-repo git@github.com:org/config.git -t prod
    """
    configure_logging(verbose)
    ctx = get_cli_context()

    console.print_header(f"Deploying {config_folder}")

    start = build_start_config(
        config_folder=config_folder,
        config_repo=config_repo,
        kubeconfig_path=kubeconfig_path,
        kubeconfig_env=kubeconfig_env,
        namespace=namespace,
        release_name=release_name,
        chart=chart,
        chart_repo=chart_repo,
        chart_version=chart_version,
    )
    session = DeploymentSession(start, target, env=ctx.env, constants=ctx.constants)
    report = session.run()

    if report.stopped_at:
        console.warn(f"Folder {report.stopped_at} not found, skipped the remaining folders")
    console.ok(
        f"Deployed {len(report.dispatched)} folder(s) to namespace {report.namespace}"
    )


@with_error_handling
def plan(
    config_folder: ConfigFolderOption,
    config_repo: ConfigRepoOption = "",
    target: TargetOption = "",
    namespace: NamespaceOption = "",
    release_name: ReleaseNameOption = "",
    chart: ChartOption = "",
    chart_repo: ChartRepoOption = "",
    chart_version: ChartVersionOption = "",
    verbose: VerboseOption = False,
) -> None:
    """Show the resolved deployment plan without touching the cluster.

    Examples:
        kube-deploy plan -c ./deploy
        kube-deploy plan -c ./deploy -t prod
    """
    configure_logging(verbose)
    ctx = get_cli_context()

    start = build_start_config(
        config_folder=config_folder,
        config_repo=config_repo,
        namespace=namespace,
        release_name=release_name,
        chart=chart,
        chart_repo=chart_repo,
        chart_version=chart_version,
    )
    config = DeploymentSession(start, target, env=ctx.env, constants=ctx.constants).plan()

    console.print_header(f"Deployment plan for {config_folder}")
    console.info(f"Namespace: {config.namespace or '[dim]not set[/dim]'}")
    if config.release_name:
        console.info(f"Release name: {config.release_name}")
    if config.helm is not None:
        console.info(f"Default chart: {_chart_label(config.helm)}")
    if config.bastion is not None and config.bastion.enabled:
        console.info(f"Bastion: {config.bastion.host}")

    if not config.deploy_folders:
        console.warn("No folders to deploy")
        return

    table = Table(show_header=True, header_style="bold")
    table.add_column("Order", justify="right")
    table.add_column("Folder")
    table.add_column("Render engine")
    table.add_column("Chart")

    for unit in config.deploy_folders:
        table.add_row(
            str(unit.order or 0),
            unit.path,
            unit.render_engine.value,
            _chart_label(unit.helm_chart),
        )

    console.print(table)

    if config.vars:
        console.info(f"Vars: {', '.join(sorted(config.vars))}")
