from dataclasses import dataclass


class DroneHelmError(Exception):
    """
    Base class for all errors that terminate a plugin run.
    """


class ConfigurationError(DroneHelmError):
    """
    Raised when the plugin configuration is incomplete or cannot be read.
    """


class RepoParseError(DroneHelmError):
    """
    Raised when a Helm repository declaration does not match `name=http(s)://...`.
    """


class TemplateError(DroneHelmError):
    """
    Raised when the kubeconfig template cannot be read or rendered.
    """


class CredentialFileError(DroneHelmError):
    """
    Raised when the kubeconfig file cannot be created.
    """


@dataclass
class ExecutionError(DroneHelmError):
    command: list[str]
    statuscode: int | None = None
    message: str = "Error running helm command"

    def __str__(self) -> str:
        message = f"{self.message}: {' '.join(self.command)}"
        if self.statuscode is None:
            message += " (failed to start)"
        else:
            message += f" (exit status {self.statuscode})"
        return message
