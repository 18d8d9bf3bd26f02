import os
import re
from collections.abc import Mapping
from typing import NamedTuple

from loguru import logger

_PLACEHOLDER_RE = re.compile(r"\$(\{?(\w+)\}?)\.?", re.ASCII)


class EnvPlaceholder(NamedTuple):
    """
    A placeholder found in a string, e.g. `EnvPlaceholder("${TAG}", "TAG")`.
    """

    token: str
    """ The text to replace, including the `$`, braces and a trailing dot if there was one. """

    name: str
    """ The bare variable name. """


def get_env_placeholders(template: str) -> list[EnvPlaceholder]:
    """
    Return all `${NAME}` and `$NAME` placeholders in *template*, left to right.
    """

    return [EnvPlaceholder(match.group(0), match.group(2)) for match in _PLACEHOLDER_RE.finditer(template)]


def lookup_env_var(name: str, prefix: str, env: Mapping[str, str] | None = None, debug: bool = False) -> str:
    """
    Look up `<PREFIX>_<NAME>` (upper-cased) and fall back to *name* as-is. Returns an empty string if neither is set
    or both are empty.
    """

    if env is None:
        env = os.environ

    prefixed_key = f"{prefix}_{name}".upper()
    value = env.get(prefixed_key, "")
    if debug:
        logger.info("-ReplVar: {} => {}-- {}", prefixed_key, name, value)
    if not value:
        value = env.get(name, "")
    return value


def resolve_env_var(
    template: str,
    prefix: str,
    *,
    env: Mapping[str, str] | None = None,
    debug: bool = False,
) -> str:
    """
    Replace every placeholder in *template* with its value from the environment (see #lookup_env_var()).
    Placeholders that cannot be resolved are replaced with an empty string.

    Args:
        template: The string to substitute placeholders in.
        prefix: The prefix to try first when looking up a variable.
        env: The environment to read from. Defaults to `os.environ`.
        debug: Log every lookup, including the resolved values.
    """

    result = template
    for placeholder in get_env_placeholders(template):
        value = lookup_env_var(placeholder.name, prefix, env, debug)
        result = result.replace(placeholder.token, value)
    return result
