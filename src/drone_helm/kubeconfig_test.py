from collections.abc import Mapping
from pathlib import Path
from typing import Any

import pytest
import yaml

from drone_helm.config import Config
from drone_helm.errors import ConfigurationError, CredentialFileError, TemplateError
from drone_helm.kubeconfig import (
    BUNDLED_TEMPLATE,
    Jinja2Renderer,
    KubeconfigRenderer,
    provision_kubeconfig,
    resolve_secrets,
    validate_credentials,
)

CLUSTER_ENV = {"API_SERVER": "https://k8s.example.com", "KUBERNETES_TOKEN": "t0ken"}


class InMemoryRenderer(KubeconfigRenderer):
    def __init__(self) -> None:
        self.rendered: list[tuple[Path, dict[str, Any], Path]] = []

    def render(self, template: Path, context: Mapping[str, Any], destination: Path) -> None:
        self.rendered.append((template, dict(context), destination))


def test_resolve_secrets() -> None:
    config = Config(prefix="prod", values="image.tag=${TAG}", api_server="ignored", token="ignored")
    env = {"PROD_API_SERVER": "https://prod.example.com", "KUBERNETES_TOKEN": "t0ken", "TAG": "1.0"}

    resolved = resolve_secrets(config, env)

    assert resolved.api_server == "https://prod.example.com"
    assert resolved.token == "t0ken"
    assert resolved.service_account == "helm"
    assert resolved.values == "image.tag=1.0"
    assert config.api_server == "ignored"


def test_resolve_secrets_service_account() -> None:
    assert resolve_secrets(Config(), {"SERVICE_ACCOUNT": "deployer"}).service_account == "deployer"


def test_validate_credentials() -> None:
    validate_credentials(Config(api_server="https://k8s.example.com", token="t0ken"))
    with pytest.raises(ConfigurationError, match="API Server"):
        validate_credentials(Config(token="t0ken"))
    with pytest.raises(ConfigurationError, match="Token"):
        validate_credentials(Config(api_server="https://k8s.example.com"))


def test_provision_kubeconfig_renders_when_missing(tmp_path: Path) -> None:
    renderer = InMemoryRenderer()
    config = Config(kube_config=tmp_path / "config", namespace="apps")

    resolved = provision_kubeconfig(config, template=Path("kubeconfig.tpl"), renderer=renderer, env=CLUSTER_ENV)

    assert resolved.api_server == "https://k8s.example.com"
    assert len(renderer.rendered) == 1
    template, context, destination = renderer.rendered[0]
    assert template == Path("kubeconfig.tpl")
    assert destination == tmp_path / "config"
    assert context["api_server"] == "https://k8s.example.com"
    assert context["token"] == "t0ken"
    assert context["service_account"] == "helm"
    assert context["namespace"] == "apps"


def test_provision_kubeconfig_is_noop_when_present(tmp_path: Path) -> None:
    kube_config = tmp_path / "config"
    kube_config.write_text("existing")
    renderer = InMemoryRenderer()
    config = Config(kube_config=kube_config)

    assert provision_kubeconfig(config, template=BUNDLED_TEMPLATE, renderer=renderer, env={}) is config
    assert renderer.rendered == []
    assert kube_config.read_text() == "existing"


def test_provision_kubeconfig_requires_credentials(tmp_path: Path) -> None:
    renderer = InMemoryRenderer()
    config = Config(kube_config=tmp_path / "config")

    with pytest.raises(ConfigurationError):
        provision_kubeconfig(config, template=BUNDLED_TEMPLATE, renderer=renderer, env={"API_SERVER": "x"})

    assert renderer.rendered == []
    assert not (tmp_path / "config").exists()


def test_Jinja2Renderer_renders_bundled_template(tmp_path: Path) -> None:
    destination = tmp_path / ".kube" / "config"
    config = Config(kube_config=destination, tls_skip_verify=True)

    provision_kubeconfig(config, template=BUNDLED_TEMPLATE, renderer=Jinja2Renderer(), env=CLUSTER_ENV)

    kubeconfig = yaml.safe_load(destination.read_text())
    assert kubeconfig["current-context"] == "helm"
    assert kubeconfig["clusters"][0]["cluster"] == {
        "server": "https://k8s.example.com",
        "insecure-skip-tls-verify": True,
    }
    assert kubeconfig["contexts"][0]["context"] == {"cluster": "helm", "user": "helm"}
    assert kubeconfig["users"][0] == {"name": "helm", "user": {"token": "t0ken"}}


def test_Jinja2Renderer_refuses_to_overwrite(tmp_path: Path) -> None:
    template = tmp_path / "template"
    template.write_text("server: {{ api_server }}")
    destination = tmp_path / "config"
    destination.write_text("existing")

    with pytest.raises(CredentialFileError):
        Jinja2Renderer().render(template, {"api_server": "x"}, destination)
    assert destination.read_text() == "existing"


def test_Jinja2Renderer_undefined_variable(tmp_path: Path) -> None:
    template = tmp_path / "template"
    template.write_text("server: {{ apiserver }}")
    destination = tmp_path / "config"

    with pytest.raises(TemplateError):
        Jinja2Renderer().render(template, {"api_server": "x"}, destination)
    assert not destination.exists()


def test_Jinja2Renderer_missing_template(tmp_path: Path) -> None:
    with pytest.raises(TemplateError):
        Jinja2Renderer().render(tmp_path / "missing", {}, tmp_path / "config")
