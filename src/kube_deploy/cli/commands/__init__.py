"""CLI command modules.

Commands:
- deploy: Resolve a config folder and deploy it
- plan: Resolve a config folder and show the plan
"""

from .deploy import deploy, plan

__all__ = ["deploy", "plan"]
