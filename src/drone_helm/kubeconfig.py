"""
Provisions the kubeconfig that Helm uses to talk to the cluster. The kubeconfig is rendered from a template using the
plugin configuration, with the cluster credentials resolved from the environment.
"""

import dataclasses
from abc import ABC, abstractmethod
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import jinja2
from loguru import logger

from drone_helm.config import Config
from drone_helm.envvars import resolve_env_var
from drone_helm.errors import ConfigurationError, CredentialFileError, TemplateError

DEFAULT_TEMPLATE = Path("/root/.kube/kubeconfig")
""" Where the kubeconfig template is installed in the plugin image. """

BUNDLED_TEMPLATE = Path(__file__).parent / "templates" / "kubeconfig"
""" The template that ships with this package, to be installed at #DEFAULT_TEMPLATE. """

DEFAULT_SERVICE_ACCOUNT = "helm"


class KubeconfigRenderer(ABC):
    """
    Renders a template with a context into a new file.
    """

    @abstractmethod
    def render(self, template: Path, context: Mapping[str, Any], destination: Path) -> None:
        """
        Render *template* with *context* and write the result to *destination*, which must not exist yet.

        Raises:
            TemplateError: If the template cannot be read or rendered.
            CredentialFileError: If the destination cannot be created.
        """


class Jinja2Renderer(KubeconfigRenderer):
    """
    Renders templates with Jinja2. Undefined variables are an error rather than rendering as empty strings.
    """

    def __init__(self) -> None:
        self._env = jinja2.Environment(undefined=jinja2.StrictUndefined, keep_trailing_newline=True)

    def render(self, template: Path, context: Mapping[str, Any], destination: Path) -> None:
        try:
            content = self._env.from_string(template.read_text()).render(context)
        except OSError as exc:
            raise TemplateError(f"Could not read kubeconfig template '{template}': {exc}") from exc
        except jinja2.TemplateError as exc:
            raise TemplateError(f"Could not render kubeconfig template '{template}': {exc}") from exc

        try:
            destination.parent.mkdir(parents=True, exist_ok=True)
            with destination.open("x") as fp:
                fp.write(content)
        except OSError as exc:
            raise CredentialFileError(f"Could not create kubeconfig '{destination}': {exc}") from exc


def resolve_secrets(config: Config, env: Mapping[str, str] | None = None) -> Config:
    """
    Resolve the inline values and the cluster credentials from the environment. The credentials are always read from
    the `API_SERVER`, `KUBERNETES_TOKEN` and `SERVICE_ACCOUNT` variables (or their prefixed variants), replacing
    whatever was configured before.
    """

    def resolve(template: str) -> str:
        return resolve_env_var(template, config.prefix, env=env, debug=config.debug)

    return dataclasses.replace(
        config,
        values=resolve(config.values),
        api_server=resolve("${API_SERVER}"),
        token=resolve("${KUBERNETES_TOKEN}"),
        service_account=resolve("${SERVICE_ACCOUNT}") or DEFAULT_SERVICE_ACCOUNT,
    )


def validate_credentials(config: Config) -> None:
    if not config.api_server:
        raise ConfigurationError("API Server is needed to deploy.")
    if not config.token:
        raise ConfigurationError("Token is needed to deploy.")


def provision_kubeconfig(
    config: Config,
    *,
    template: Path,
    renderer: KubeconfigRenderer,
    env: Mapping[str, str] | None = None,
) -> Config:
    """
    Render the kubeconfig at `config.kube_config` unless it already exists, in which case the existing file is used
    as-is and *config* is returned unchanged.

    Returns:
        The configuration with secrets resolved, which is also what the kubeconfig was rendered from.
    """

    if config.kube_config.exists():
        logger.debug("Using existing kubeconfig '{}'", config.kube_config)
        return config

    config = resolve_secrets(config, env)
    validate_credentials(config)

    logger.info("Rendering kubeconfig '{}' from '{}'", config.kube_config, template)
    renderer.render(template, dataclasses.asdict(config), config.kube_config)
    return config
