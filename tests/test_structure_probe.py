"""
Tests for repository structure detection and build strategy selection.
"""

from pathlib import Path

import pytest

from solinstall.core.engine.strategy import BuildStrategy, select_run_target, select_strategy
from solinstall.core.models.structure import RepositoryStructure
from solinstall.core.services.structure_probe import (
    find_any_dockerfile,
    find_compose_file,
    probe_repository,
)

from repo_fixtures import write_tree

# ── Probing ─────────────────────────────────────────────────────────


class TestComposeDetection:
    def test_priority_order(self, tmp_path: Path):
        write_tree(tmp_path, {"compose.yaml": "", "docker-compose.yaml": ""})
        assert find_compose_file(tmp_path) == "docker-compose.yaml"

    def test_first_name_wins(self, tmp_path: Path):
        write_tree(tmp_path, {"docker-compose.yml": "", "compose.yml": ""})
        assert find_compose_file(tmp_path) == "docker-compose.yml"

    def test_nested_compose_is_ignored(self, tmp_path: Path):
        write_tree(tmp_path, {"deploy/docker-compose.yml": ""})
        assert find_compose_file(tmp_path) is None

    def test_compose_and_root_dockerfile(self, tmp_path: Path):
        write_tree(tmp_path, {"compose.yml": "", "Dockerfile": "FROM scratch"})
        structure = probe_repository(tmp_path)
        assert structure.has_docker_compose
        assert structure.compose_file == "compose.yml"
        assert structure.has_root_dockerfile
        assert select_strategy(structure) is BuildStrategy.COMPOSE


class TestDockerfileDiscovery:
    def test_root_dockerfile_not_listed_as_subdirectory(self, tmp_path: Path):
        write_tree(tmp_path, {"Dockerfile": "FROM scratch"})
        structure = probe_repository(tmp_path)
        assert structure.has_root_dockerfile
        assert structure.dockerfiles == ()

    def test_subdirectories_deduplicated_in_order(self, tmp_path: Path):
        write_tree(tmp_path, {
            "api/Dockerfile": "",
            "api/worker/Dockerfile": "",
            "frontend/Dockerfile": "",
            "services/billing/Dockerfile": "",
        })
        structure = probe_repository(tmp_path)
        assert not structure.has_root_dockerfile
        assert structure.dockerfiles == ("api", "frontend", "services")

    def test_git_directory_skipped(self, tmp_path: Path):
        write_tree(tmp_path, {".git/hooks/Dockerfile": "", "web/Dockerfile": ""})
        assert probe_repository(tmp_path).dockerfiles == ("web",)

    def test_similar_names_do_not_count(self, tmp_path: Path):
        write_tree(tmp_path, {"api/Dockerfile.dev": "", "api/dockerfile": ""})
        assert probe_repository(tmp_path).dockerfiles == ()

    def test_find_any_dockerfile(self, tmp_path: Path):
        write_tree(tmp_path, {"deep/nested/Dockerfile": ""})
        assert find_any_dockerfile(tmp_path) == tmp_path / "deep" / "nested" / "Dockerfile"

    def test_find_any_dockerfile_none(self, tmp_path: Path):
        write_tree(tmp_path, {"README.md": ""})
        assert find_any_dockerfile(tmp_path) is None

    def test_find_any_dockerfile_accepts_variants(self, tmp_path: Path):
        write_tree(tmp_path, {"deploy/prod.Dockerfile": "", "deploy/README.md": ""})
        assert find_any_dockerfile(tmp_path) == tmp_path / "deploy" / "prod.Dockerfile"

    def test_find_any_dockerfile_prefers_exact_name(self, tmp_path: Path):
        write_tree(tmp_path, {"Dockerfile.dev": "", "Dockerfile": ""})
        assert find_any_dockerfile(tmp_path) == tmp_path / "Dockerfile"

    def test_variants_not_counted_by_probe(self, tmp_path: Path):
        write_tree(tmp_path, {"Dockerfile.prod": "", "api/api.Dockerfile": ""})
        structure = probe_repository(tmp_path)
        assert not structure.has_root_dockerfile
        assert structure.dockerfiles == ()
        assert select_strategy(structure) is BuildStrategy.DISCOVERED_DOCKERFILE


class TestServiceHints:
    def test_existing_hint_directories_recorded(self, tmp_path: Path):
        write_tree(tmp_path, {"backend/main.py": "", "web/index.html": "", "docs/x.md": ""})
        assert probe_repository(tmp_path).subdirectories == ("backend", "web")

    def test_hint_file_is_not_a_directory(self, tmp_path: Path):
        write_tree(tmp_path, {"app": "not a dir"})
        assert probe_repository(tmp_path).subdirectories == ()


def test_probe_has_no_side_effects(tmp_path: Path):
    write_tree(tmp_path, {"compose.yml": "", "api/Dockerfile": "", "frontend/x": ""})
    before = sorted(str(p) for p in tmp_path.rglob("*"))
    probe_repository(tmp_path)
    assert sorted(str(p) for p in tmp_path.rglob("*")) == before


# ── Strategy selection ──────────────────────────────────────────────


class TestSelectStrategy:
    def test_chain_order(self):
        assert select_strategy(RepositoryStructure(
            has_docker_compose=True, compose_file="compose.yml",
            has_root_dockerfile=True, dockerfiles=("api",),
        )) is BuildStrategy.COMPOSE
        assert select_strategy(RepositoryStructure(
            has_root_dockerfile=True, dockerfiles=("api",),
        )) is BuildStrategy.ROOT_DOCKERFILE
        assert select_strategy(RepositoryStructure(
            dockerfiles=("api",),
        )) is BuildStrategy.SUBDIRECTORY_DOCKERFILES
        assert select_strategy(RepositoryStructure()) is BuildStrategy.DISCOVERED_DOCKERFILE

    def test_hints_do_not_affect_selection(self):
        structure = RepositoryStructure(subdirectories=("frontend", "api"))
        assert select_strategy(structure) is BuildStrategy.DISCOVERED_DOCKERFILE

    def test_compose_disallowed_for_single_container(self):
        structure = RepositoryStructure(
            has_docker_compose=True, compose_file="compose.yml", has_root_dockerfile=True,
        )
        assert select_strategy(structure, allow_compose=False) is BuildStrategy.ROOT_DOCKERFILE


class TestSelectRunTarget:
    def test_prefers_frontend(self):
        assert select_run_target(["api", "frontend"]) == "frontend"

    def test_falls_back_to_first(self):
        assert select_run_target(["worker", "api"]) == "worker"

    def test_empty_rejected(self):
        with pytest.raises(ValueError):
            select_run_target([])
