"""Tests for render-engine resolution."""

from pathlib import Path

import pytest

from kube_deploy.deployment.errors import ConfigurationError
from kube_deploy.deployment.models import DeployUnit, HelmChart, RenderEngine
from kube_deploy.deployment.render_engine import (
    HelmRelease,
    Kustomize,
    PlainManifests,
    resolve_render_engine,
)


@pytest.fixture
def folder(tmp_path: Path) -> Path:
    path = tmp_path / "unit"
    path.mkdir()
    return path


class TestAutoDetection:
    """Auto engine narrows from the unit and folder contents."""

    def test_chart_selects_helm(self, folder: Path) -> None:
        chart = HelmChart(name="web")

        render = resolve_render_engine(DeployUnit(helm_chart=chart), folder)

        assert render == HelmRelease(chart)

    @pytest.mark.parametrize("name", ["kustomization.yaml", "kustomization.yml"])
    def test_kustomization_selects_kustomize(self, folder: Path, name: str) -> None:
        (folder / name).write_text("resources: []\n")

        assert resolve_render_engine(DeployUnit(), folder) == Kustomize()

    def test_chart_wins_over_kustomization(self, folder: Path) -> None:
        (folder / "kustomization.yaml").write_text("resources: []\n")
        chart = HelmChart(name="web")

        render = resolve_render_engine(DeployUnit(helm_chart=chart), folder)

        assert isinstance(render, HelmRelease)

    def test_plain_folder_selects_manifests(self, folder: Path) -> None:
        (folder / "deploy.yaml").write_text("kind: Deployment\n")

        assert resolve_render_engine(DeployUnit(), folder) == PlainManifests()


class TestExplicitEngine:
    """Explicit engines win outright."""

    def test_none_ignores_kustomization(self, folder: Path) -> None:
        (folder / "kustomization.yaml").write_text("resources: []\n")

        render = resolve_render_engine(DeployUnit(render_engine=RenderEngine.NONE), folder)

        assert render == PlainManifests()

    def test_kustomize_without_file(self, folder: Path) -> None:
        render = resolve_render_engine(
            DeployUnit(render_engine=RenderEngine.KUSTOMIZE), folder
        )

        assert render == Kustomize()

    def test_kustomize_ignores_chart(self, folder: Path) -> None:
        unit = DeployUnit(render_engine=RenderEngine.KUSTOMIZE, helm_chart=HelmChart(name="web"))

        assert resolve_render_engine(unit, folder) == Kustomize()

    def test_helm_without_chart_is_a_config_error(self, folder: Path) -> None:
        unit = DeployUnit(path="app/helmvalues", render_engine=RenderEngine.HELM)

        with pytest.raises(ConfigurationError, match="app/helmvalues"):
            resolve_render_engine(unit, folder)
