"""
Templating — expansion of embedded expressions in configuration text.

A templater is any callable ``(text, pathname) -> text`` applied to the
raw file content before it is parsed as YAML. The default one expands
``${VAR}`` and ``${VAR:-default}`` from the process environment.
"""
import os
import re
from pathlib import Path
from typing import Callable, Optional, Union

Templater = Callable[[str, Optional[Union[str, Path]]], str]

_ENV_PATTERN = re.compile(
    r"\$(\$\{[^}]*\})"
    r"|\$\{([A-Za-z_][A-Za-z0-9_]*)(?::-([^}]*))?\}"
)


def expand_env(text: str, pathname: Optional[Union[str, Path]] = None) -> str:
    """Expand ``${VAR}`` placeholders using environment variables.

    Unset variables expand to their ``:-`` default, or to an empty string.
    ``$${VAR}`` is left as the literal ``${VAR}``.
    """
    def _replace(match: re.Match) -> str:
        escaped, var, default = match.groups()
        if escaped is not None:
            return escaped
        return os.environ.get(var, default if default is not None else "")

    return _ENV_PATTERN.sub(_replace, text)
