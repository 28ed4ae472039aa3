"""CLI smoke tests"""

import re

import pytest
from click.testing import CliRunner

from devflow.cli.main import cli
from devflow.utils.hash_utils import calculate_directory_hash

from conftest import dep, read_generated, write_project


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def project(tmp_path):
    write_project(
        tmp_path / "db",
        images={"db": {"image": "registry.local/db", "build": "echo building ${IMAGE}:${TAG}"}},
        deployments=[{"name": "db", "deploy": "echo deploying db", "purge": "echo purging db"}]
    )
    return write_project(tmp_path / "app", dependencies=[dep("../db")])


def test_hash_prints_digest(runner, tmp_path):
    (tmp_path / "file.txt").write_text("content\n")

    result = runner.invoke(cli, ["hash", str(tmp_path)])

    assert result.exit_code == 0
    digest = result.output.strip()
    assert re.fullmatch(r"[0-9a-f]{64}", digest)
    assert digest == calculate_directory_hash(tmp_path, [".git", ".devflow"])


def test_hash_missing_directory_fails(runner, tmp_path):
    result = runner.invoke(cli, ["hash", str(tmp_path / "missing")])
    assert result.exit_code == 1


def test_deps_list(runner, project):
    result = runner.invoke(cli, ["--project-root", str(project), "deps", "list"])

    assert result.exit_code == 0, result.output
    assert "db" in result.output


def test_deps_build_then_skip(runner, project):
    first = runner.invoke(cli, ["--project-root", str(project), "deps", "build"])
    assert first.exit_code == 0, first.output

    images = read_generated(project.parent / "db")["profiles"]["default"]["images"]
    assert images["db"]["image_name"] == "registry.local/db"
    assert len(images["db"]["tag"]) == 12

    second = runner.invoke(cli, ["--project-root", str(project), "deps", "build"])
    assert second.exit_code == 0, second.output
    assert "skipped" in second.output


def test_deps_deploy_and_purge(runner, project):
    deploy = runner.invoke(cli, ["--project-root", str(project), "deps", "deploy"])
    assert deploy.exit_code == 0, deploy.output
    assert len(read_generated(project)["profiles"]["default"]["deployments"]) == 1

    purge = runner.invoke(cli, ["--project-root", str(project), "deps", "purge"])
    assert purge.exit_code == 0, purge.output
    assert read_generated(project)["profiles"]["default"]["deployments"] == {}


def test_failing_build_exits_with_error(runner, tmp_path):
    write_project(tmp_path / "db", images={"db": {"image": "registry.local/db", "build": "exit 3"}})
    root = write_project(tmp_path / "app", dependencies=[dep("../db")])

    result = runner.invoke(cli, ["--project-root", str(root), "deps", "build"])

    assert result.exit_code == 1
    assert "db" in result.output
    assert read_generated(root)["profiles"]["default"]["dependencies"] == {}


def test_cycle_exits_with_error(runner, tmp_path):
    write_project(tmp_path / "a", dependencies=[dep("../b")])
    write_project(tmp_path / "b", dependencies=[dep("../a")])
    root = write_project(tmp_path / "app", dependencies=[dep("../a")])

    result = runner.invoke(cli, ["--project-root", str(root), "deps", "list"])
    assert result.exit_code == 1
    assert "Cyclic dependency found" in result.output

    allowed = runner.invoke(cli, ["--project-root", str(root), "deps", "--allow-cyclic", "list"])
    assert allowed.exit_code == 0, allowed.output


def test_outside_project_exits_with_error(runner, tmp_path, monkeypatch):
    monkeypatch.delenv("DEVFLOW_PROJECT_ROOT", raising=False)
    monkeypatch.chdir(tmp_path)

    result = runner.invoke(cli, ["deps", "list"])

    assert result.exit_code == 1


def test_invalid_var_is_rejected(runner, project):
    result = runner.invoke(cli, ["--project-root", str(project), "deps", "--var", "NOVALUE", "list"])
    assert result.exit_code == 2
