"""Main CLI application module.

This module provides the main entry point for the kube-deploy CLI.

Commands:
- deploy: Deploy a config folder to Kubernetes
- plan: Show the resolved deployment plan
"""

import typer

from .commands import deploy, plan

# Create the main CLI application
app = typer.Typer(
    help="🚢 kube-deploy - Declarative Kubernetes deployments from a config folder",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

app.command("deploy")(deploy)
app.command("plan")(plan)


def main() -> None:
    """Main entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
