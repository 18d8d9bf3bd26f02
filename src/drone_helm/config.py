import os
from collections.abc import Mapping
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, get_type_hints

from loguru import logger

from drone_helm.errors import ConfigurationError

ENV_PREFIX = "PLUGIN_"
""" Drone passes the `settings` of a plugin step as environment variables with this prefix. """

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off", ""}


@dataclass(kw_only=True, frozen=True)
class Config:
    """
    The parameters for a plugin run. The configuration is loaded once on startup and never modified; secret resolution
    produces an updated copy instead.
    """

    api_server: str = ""
    """ URL of the Kubernetes API server. Usually resolved from the `API_SERVER` secret. """

    token: str = ""
    """ Bearer token to authenticate with. Usually resolved from the `KUBERNETES_TOKEN` secret. """

    service_account: str = ""
    """ The user name written into the kubeconfig. Falls back to `helm`. """

    kube_config: Path = Path("/root/.kube/config")
    """ Where the kubeconfig is read from by Helm. It is rendered from a template if it does not exist. """

    tls_skip_verify: bool = False
    namespace: str = ""
    release: str = ""
    chart: str = ""
    version: str = ""

    values: str = ""
    """ Inline values passed to `--set`. May contain `${VAR}` placeholders that are resolved from the environment. """

    values_files: str = ""
    """ Comma separated list of values files, each passed with `--values`. """

    debug: bool = False
    dry_run: bool = False

    secrets: list[str] = field(default_factory=list)
    """ Names of the secrets made available to the step. Informational only. """

    prefix: str = ""
    """ Environment variables named `<PREFIX>_<NAME>` take precedence over `<NAME>` when resolving placeholders. """

    tiller_ns: str = ""
    wait: bool = False
    recreate_pods: bool = False
    upgrade: bool = False
    canary_image: bool = False
    client_only: bool = False
    reuse_values: bool = False
    timeout: str = ""
    force: bool = False

    helm_repos: list[str] = field(default_factory=list)
    """ Repositories to add before running the main command, each in the form `name=url`. """

    @staticmethod
    def from_env(env: Mapping[str, str] | None = None) -> "Config":
        """
        Load the configuration from `PLUGIN_<FIELD>` environment variables. Variables that are not set leave the
        field at its default.
        """

        if env is None:
            env = os.environ

        hints = get_type_hints(Config)
        values: dict[str, Any] = {}
        for f in fields(Config):
            key = ENV_PREFIX + f.name.upper()
            if key not in env:
                continue
            values[f.name] = _convert(key, env[key], hints[f.name])

        logger.trace("Loaded configuration fields from environment: {}", sorted(values))
        return Config(**values)

    @staticmethod
    def load(file: Path) -> "Config":
        """
        Load the configuration from a YAML file whose keys are the field names of this class.
        """

        from databind.core import ConversionError
        from databind.json import load as deser
        from yaml import YAMLError, safe_load

        logger.debug("Loading plugin configuration from '{}'", file)
        try:
            data = safe_load(file.read_text())
            return deser(data or {}, Config, filename=str(file))
        except (OSError, YAMLError, ConversionError) as exc:
            raise ConfigurationError(f"Could not load configuration from '{file}': {exc}") from exc


def _convert(key: str, raw: str, type_: Any) -> Any:
    if type_ is bool:
        value = raw.strip().lower()
        if value in _TRUE_VALUES:
            return True
        if value in _FALSE_VALUES:
            return False
        raise ConfigurationError(f"Invalid boolean value for {key}: {raw!r}")
    if type_ is Path:
        return Path(raw)
    if type_ == list[str]:
        return [item for item in raw.split(",") if item]
    return raw
