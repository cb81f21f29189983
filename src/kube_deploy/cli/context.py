"""CLI context and dependency container."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

import click
import typer
from dotenv import dotenv_values

from kube_deploy.cli.shared.console import CLIConsole, console
from kube_deploy.deployment.constants import DEFAULT_CONSTANTS, DeploymentConstants


@dataclass(frozen=True)
class CLIContext:
    """Runtime dependencies for CLI commands."""

    console: CLIConsole
    working_dir: Path
    env: dict[str, str]
    constants: DeploymentConstants


def load_environment(working_dir: Path) -> dict[str, str]:
    """Snapshot the process environment, filled in from ``.env``.

    Values already set in the environment win over the ``.env`` file, and
    the process environment itself is left untouched.
    """
    env = {
        key: value
        for key, value in dotenv_values(working_dir / ".env").items()
        if value is not None
    }
    env.update(os.environ)
    return env


def build_cli_context() -> CLIContext:
    """Build a fresh CLIContext."""
    working_dir = Path.cwd()
    return CLIContext(
        console=console,
        working_dir=working_dir,
        env=load_environment(working_dir),
        constants=DEFAULT_CONSTANTS,
    )


def get_cli_context(ctx: typer.Context | None = None) -> CLIContext:
    """Return the CLIContext from Typer, falling back to a new instance."""
    context = ctx or click.get_current_context(silent=True)
    if context and isinstance(context.obj, CLIContext):
        return context.obj
    return build_cli_context()
