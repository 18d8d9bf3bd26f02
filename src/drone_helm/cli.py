"""
Deploy a Helm chart to Kubernetes from a Drone pipeline. The plugin settings are read from `PLUGIN_*` environment
variables unless a configuration file is given.
"""

import sys
from enum import Enum
from pathlib import Path
from typing import Optional

from loguru import logger
from typer import Exit, Option, Typer

from drone_helm.config import Config
from drone_helm.errors import DroneHelmError
from drone_helm.helm import Helm
from drone_helm.kubeconfig import DEFAULT_TEMPLATE
from drone_helm.plugin import Plugin

app = Typer(help=__doc__, pretty_exceptions_enable=False, add_completion=False)


class LogLevel(str, Enum):
    TRACE = "trace"
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


@app.command()
def run(
    config: Optional[Path] = Option(
        None, "--config", "-c", help="Load the plugin settings from this YAML file instead of the environment."
    ),
    event: str = Option("", envvar="DRONE_BUILD_EVENT", help="The build event that triggered the pipeline."),
    helm_bin: Path = Option(Path("/bin/helm"), envvar="HELM_BIN", help="Path to the `helm` binary."),
    kubeconfig_template: Path = Option(
        DEFAULT_TEMPLATE,
        envvar="KUBECONFIG_TEMPLATE",
        help="The template to render the kubeconfig from if it does not exist yet.",
    ),
    log_level: LogLevel = Option(LogLevel.INFO, "--log-level", "-l", help="The log level to use."),
) -> None:
    """
    Run `helm init`, add the configured repositories and install, upgrade or delete the release.
    """

    logger.remove()
    handler_id = logger.add(sys.stderr, level=log_level.name)

    try:
        plugin_config = Config.load(config) if config else Config.from_env()
        if plugin_config.debug and logger.level(log_level.name).no > logger.level("DEBUG").no:
            logger.remove(handler_id)
            logger.add(sys.stderr, level="DEBUG")

        plugin = Plugin(plugin_config, helm=Helm(helm_bin), kubeconfig_template=kubeconfig_template)
        plugin.exec(event)
    except DroneHelmError as exc:
        logger.error("{}", exc)
        raise Exit(1)
