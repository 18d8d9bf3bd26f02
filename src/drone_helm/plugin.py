import os
from collections.abc import Mapping
from pathlib import Path

from loguru import logger

from drone_helm.commands import Event, build_init_command, build_repo_add_command, compile_command
from drone_helm.config import Config
from drone_helm.errors import ExecutionError
from drone_helm.helm import Helm
from drone_helm.kubeconfig import DEFAULT_TEMPLATE, Jinja2Renderer, KubeconfigRenderer, provision_kubeconfig
from drone_helm.repo import HelmRepo


class Plugin:
    """
    Runs the Helm commands for a build event: provision the kubeconfig if there is none, `helm init`, add the
    configured repositories and finally install, upgrade or delete the release.

    Args:
        config: The plugin configuration.
        helm: Runs the `helm` commands.
        renderer: Renders the kubeconfig template. Defaults to #Jinja2Renderer.
        kubeconfig_template: The template to render the kubeconfig from.
        env: The environment to resolve secrets from. Defaults to `os.environ`.
    """

    def __init__(
        self,
        config: Config,
        helm: Helm | None = None,
        renderer: KubeconfigRenderer | None = None,
        kubeconfig_template: Path = DEFAULT_TEMPLATE,
        env: Mapping[str, str] | None = None,
    ) -> None:
        self.config = config
        self.helm = helm or Helm()
        self.renderer = renderer or Jinja2Renderer()
        self.kubeconfig_template = kubeconfig_template
        self.env = env

    def exec(self, event: str | Event) -> None:
        """
        Run the plugin for the given build event. The first failing step ends the run.

        Raises:
            DroneHelmError: If any of the steps fail.
        """

        if self.config.debug:
            logger.warning("Debug mode is enabled, environment variables and credentials will be printed to the log.")
            self._debug_env()

        config = provision_kubeconfig(
            self.config,
            template=self.kubeconfig_template,
            renderer=self.renderer,
            env=self.env,
        )

        if config.debug:
            self._debug(config)

        self.helm.run(build_init_command(config))

        for spec in config.helm_repos:
            repo_add = build_repo_add_command(HelmRepo.parse(spec))
            logger.info("Adding helm repo: {}", " ".join(repo_add))
            try:
                self.helm.run(repo_add)
            except ExecutionError as exc:
                raise ExecutionError(repo_add, exc.statuscode, "Error adding helm repo") from exc

        command = compile_command(Event.parse(event), config)
        logger.info("Helm command: {}", " ".join(command))
        self.helm.run(command)

    def _debug_env(self) -> None:
        env = os.environ if self.env is None else self.env
        for key, value in env.items():
            logger.debug("-Var:-- {}={}", key, value)

    def _debug(self, config: Config) -> None:
        logger.debug("Config: {}", config)
        logger.debug("Api server: {}", config.api_server)
        logger.debug("Values: {}", config.values)
        logger.debug("Secrets: {}", config.secrets)
        logger.debug("Helm Repos: {}", config.helm_repos)
        logger.debug("ValuesFiles: {}", config.values_files)
        for path in (self.kubeconfig_template, config.kube_config):
            try:
                logger.debug("Contents of '{}':\n{}", path, path.read_text())
            except OSError as exc:
                logger.debug("Could not read '{}': {}", path, exc)
