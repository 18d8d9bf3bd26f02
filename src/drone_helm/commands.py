"""
Builds the argument lists for the `helm` invocations of a plugin run. The functions in this module are pure; running
the commands is left to #drone_helm.helm.Helm.
"""

from enum import Enum
from typing import NewType

from drone_helm.config import Config
from drone_helm.repo import HelmRepo, unquote

Command = NewType("Command", list[str])
""" The arguments of a single `helm` invocation, without the binary itself. """


class Event(str, Enum):
    """
    The CI build events the plugin distinguishes. Drone passes the event in `DRONE_BUILD_EVENT`.
    """

    PUSH = "push"
    TAG = "tag"
    DEPLOYMENT = "deployment"
    DELETE = "delete"
    OTHER = "other"

    @staticmethod
    def parse(value: str) -> "Event":
        """
        Classify a build event. Unknown events (and `other` itself) are classified as #Event.OTHER.
        """

        try:
            return Event(value)
        except ValueError:
            return Event.OTHER


def build_init_command(config: Config) -> Command:
    command = Command(["init"])
    if config.tiller_ns:
        command.extend(["--tiller-namespace", config.tiller_ns])
    if config.client_only:
        command.append("--client-only")
    if config.upgrade:
        command.append("--upgrade")
    if config.canary_image:
        command.append("--canary-image")
    return command


def build_repo_add_command(repo: HelmRepo) -> Command:
    return Command(["repo", "add", repo.name, repo.url])


def build_upgrade_command(config: Config) -> Command:
    """
    Build `helm upgrade --install`. The order of the arguments is fixed; options are only added if the corresponding
    field is set.
    """

    command = Command(["upgrade", "--install"])
    if config.release:
        command.append(config.release)
    command.append(config.chart)
    if config.version:
        command.extend(["--version", config.version])
    if config.values:
        command.extend(["--set", unquote(config.values)])
    if config.values_files:
        # Paths are taken verbatim, surrounding whitespace included.
        for values_file in config.values_files.split(","):
            command.extend(["--values", values_file])
    if config.namespace:
        command.extend(["--namespace", config.namespace])
    if config.tiller_ns:
        command.extend(["--tiller-namespace", config.tiller_ns])
    if config.dry_run:
        command.append("--dry-run")
    if config.debug:
        command.append("--debug")
    if config.wait:
        command.append("--wait")
    if config.recreate_pods:
        command.append("--recreate-pods")
    if config.reuse_values:
        command.append("--reuse-values")
    if config.timeout:
        command.extend(["--timeout", config.timeout])
    if config.force:
        command.append("--force")
    return command


def build_delete_command(config: Config) -> Command:
    return Command(["delete", config.release])


def build_help_command() -> Command:
    return Command(["help"])


def compile_command(event: Event, config: Config) -> Command:
    """
    Build the main command for a build event: push, tag and deployment events install or upgrade the release, delete
    events delete it and any other event only prints the Helm help.
    """

    match event:
        case Event.PUSH | Event.TAG | Event.DEPLOYMENT:
            return build_upgrade_command(config)
        case Event.DELETE:
            return build_delete_command(config)
        case _:
            return build_help_command()
