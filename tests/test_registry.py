"""
Tests for configuration — the solutions registry and installer settings.
"""

import textwrap
from pathlib import Path

import pytest

from solinstall.core.config.registry import (
    ConfigError,
    StaticSolutionRegistry,
    load_registry,
)
from solinstall.core.config.settings import InstallerSettings, load_settings
from solinstall.core.errors import UnknownSolution
from solinstall.core.models.solution import InstallKind, SolutionDescriptor


@pytest.fixture
def solutions_yml(tmp_path: Path) -> Path:
    path = tmp_path / "solutions.yml"
    path.write_text(textwrap.dedent("""\
        solutions:
          notes:
            repo_url: https://example.com/notes.git
            image_name: notes-img
            container_name: notes-container
            port: 3100
            install_kind: docker
            env_file: env.example
          crm:
            repo_url: https://example.com/crm.git
            repo_name: crm-app
            branch: develop
            image_name: crm-img
            container_name: crm-container
            port: "5000"
            install_kind: docker-compose
            additional_ports: [5001, "5002"]
            env_defaults:
              NODE_ENV: production
    """))
    return path


class TestLoadRegistry:
    def test_packaged_default(self):
        registry = load_registry()
        assert registry.identifiers() == ["ai-doc-editor", "followup"]
        editor = registry.get("ai-doc-editor")
        assert editor.install_kind is InstallKind.SINGLE_CONTAINER
        assert editor.port == "3002"
        followup = registry.get("followup")
        assert followup.is_multi_service
        assert followup.repo_name == "foloup"
        assert followup.env_defaults["NODE_ENV"] == "production"

    def test_custom_file(self, solutions_yml: Path):
        registry = load_registry(solutions_yml)
        notes = registry.get("notes")
        assert notes.port == "3100"
        assert notes.repo_name == "notes"
        assert notes.branch == "main"
        crm = registry.get("crm")
        assert crm.install_kind is InstallKind.MULTI_SERVICE
        assert crm.branch == "develop"
        assert crm.additional_ports == ("5001", "5002")

    def test_flat_mapping_accepted(self, tmp_path: Path):
        path = tmp_path / "flat.yml"
        path.write_text(
            "svc:\n  repo_url: https://example.com/svc.git\n"
            "  image_name: svc-img\n  container_name: svc\n  port: 80\n"
        )
        assert "svc" in load_registry(path)

    def test_missing_file(self, tmp_path: Path):
        with pytest.raises(ConfigError, match="not found"):
            load_registry(tmp_path / "absent.yml")

    def test_invalid_yaml(self, tmp_path: Path):
        path = tmp_path / "bad.yml"
        path.write_text("solutions: [unclosed\n")
        with pytest.raises(ConfigError, match="Invalid YAML"):
            load_registry(path)

    def test_not_a_mapping(self, tmp_path: Path):
        path = tmp_path / "list.yml"
        path.write_text("- a\n- b\n")
        with pytest.raises(ConfigError, match="mapping"):
            load_registry(path)

    def test_invalid_entry(self, tmp_path: Path):
        path = tmp_path / "bad_kind.yml"
        path.write_text(
            "x:\n  repo_url: u\n  image_name: i\n  container_name: c\n"
            "  port: 1\n  install_kind: helm\n"
        )
        with pytest.raises(ConfigError, match="Invalid solution 'x'"):
            load_registry(path)


class TestRegistryLookup:
    def _registry(self) -> StaticSolutionRegistry:
        return StaticSolutionRegistry([
            SolutionDescriptor(identifier="a", repo_url="u", image_name="i", container_name="c", port="1"),
            SolutionDescriptor(identifier="b", repo_url="u", image_name="i", container_name="c", port="2"),
        ])

    def test_unknown_lists_available(self):
        with pytest.raises(UnknownSolution) as exc:
            self._registry().get("zzz")
        assert str(exc.value) == "Unknown solution type: zzz. Available solutions: a, b"

    def test_empty_identifier(self):
        with pytest.raises(UnknownSolution, match="Solution type is required"):
            self._registry().get("")

    def test_contains(self):
        registry = self._registry()
        assert "a" in registry
        assert "zzz" not in registry
        assert None not in registry

    def test_duplicate_identifier_rejected(self):
        solution = SolutionDescriptor(identifier="a", repo_url="u", image_name="i", container_name="c", port="1")
        with pytest.raises(ConfigError, match="Duplicate"):
            StaticSolutionRegistry([solution, solution])


class TestSettings:
    def test_defaults(self):
        settings = load_settings(environ={})
        assert settings.workspace_root == Path("/workspace")
        assert settings.root_env_path == Path("/workspace/.env")
        assert settings.network == "weamai_app-network"
        assert settings.command_timeout == 3600

    def test_from_environment(self, tmp_path: Path):
        settings = load_settings(environ={
            "SOLINSTALL_WORKSPACE_ROOT": str(tmp_path),
            "SOLINSTALL_NETWORK": "custom-net",
            "SOLINSTALL_COMMAND_TIMEOUT": "0",
            "SOLINSTALL_COMPOSE_VERSION": "v2.29.0",
        })
        assert settings.workspace_root == tmp_path
        assert settings.network == "custom-net"
        assert settings.command_timeout is None
        assert settings.compose_version == "v2.29.0"
        assert settings.workspace_for("repo") == tmp_path / "repo"

    def test_overrides_win(self, tmp_path: Path):
        settings = load_settings(
            environ={"SOLINSTALL_WORKSPACE_ROOT": "/elsewhere"},
            workspace_root=tmp_path,
        )
        assert settings.workspace_root == tmp_path

    def test_invalid_value(self):
        with pytest.raises(ConfigError, match="Invalid installer settings"):
            load_settings(environ={"SOLINSTALL_COMMAND_TIMEOUT": "soon"})

    def test_explicit_root_env(self, tmp_path: Path):
        settings = InstallerSettings(workspace_root=tmp_path, root_env_file=tmp_path / "x.env")
        assert settings.root_env_path == tmp_path / "x.env"
