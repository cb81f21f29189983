"""Environment variable interpolation utilities."""

from __future__ import annotations

import os
import re
from collections.abc import Mapping
from pathlib import Path

# ${VAR}, ${VAR:-default} or $VAR
_PATTERN = re.compile(r"\$\{([^}]+)\}|\$([A-Za-z_][A-Za-z0-9_]*)")


def substitute_env_vars(text: str, env: Mapping[str, str]) -> str:
    """
    Substitute environment variable placeholders in text.

    Supports formats:
    - ${VAR_NAME} - replaced when set, otherwise left as-is
    - $VAR_NAME - replaced when set, otherwise rewritten as ${VAR_NAME}
    - ${VAR_NAME:-default} - replaced with the default when unset

    Unknown variables are kept so that manifests which use shell-style
    placeholders of their own (init scripts, config maps) survive the copy.
    """

    def replacer(match: re.Match[str]) -> str:
        braced, bare = match.group(1), match.group(2)

        if bare is not None:
            value = env.get(bare)
            return value if value is not None else f"${{{bare}}}"

        if ":-" in braced:
            var_name, default = braced.split(":-", 1)
            return env.get(var_name, default)

        value = env.get(braced)
        return value if value is not None else match.group(0)

    return _PATTERN.sub(replacer, text)


def expand_path(path: str, env: Mapping[str, str] | None = None) -> str:
    """Expand a leading ``~`` and ``$VAR`` references in a path.

    Args:
        path: Path as written by the user
        env: Variables to expand from (defaults to os.environ)

    Returns:
        The expanded path
    """
    env = os.environ if env is None else env
    home = env.get("HOME") or str(Path.home())

    if path == "~":
        path = home
    elif path.startswith("~/"):
        path = str(Path(home) / path[2:])

    return substitute_env_vars(path, env)
