import shlex
import subprocess
from dataclasses import dataclass
from pathlib import Path

from loguru import logger

from drone_helm.commands import Command
from drone_helm.errors import ExecutionError


@dataclass
class Helm:
    """
    Runs the `helm` binary. The output of the process is not captured but goes straight to the plugin's stdout and
    stderr, so it shows up in the build log.
    """

    binary: Path = Path("/bin/helm")

    def run(self, command: Command) -> None:
        """
        Run `helm` with the given arguments and wait for it to finish.

        Raises:
            ExecutionError: If the process could not be started or exited with a non-zero status.
        """

        args = [str(self.binary), *command]
        logger.debug("Running $ {}", " ".join(map(shlex.quote, args)))
        try:
            status = subprocess.run(args)
        except OSError as exc:
            logger.debug("Could not start '{}': {}", self.binary, exc)
            raise ExecutionError(list(command)) from exc
        if status.returncode != 0:
            raise ExecutionError(list(command), status.returncode)
