"""Tests for dependency resolution"""

import pytest

from devflow.api.exceptions import ConfigError, CycleError, DependencyResolutionError, SourceFetchError
from devflow.core.config_loader import ConfigLoader
from devflow.core.generated_store import InMemoryGeneratedStore
from devflow.core.resolver import Resolver

from conftest import FakeFetcher, dep, write_project


class CountingLoader(ConfigLoader):
    """Config loader counting how often each directory is loaded"""

    def __init__(self):
        super().__init__()
        self.loads = {}

    def load_child_config(self, path, profile=None, variables=None):
        key = (str(path), profile)
        self.loads[key] = self.loads.get(key, 0) + 1
        return super().load_child_config(path, profile, variables)


def make_resolver(root, allow_cyclic=False, fetcher=None, loader=None, max_workers=4):
    config = ConfigLoader().load_project(root)
    return Resolver(
        root,
        config,
        InMemoryGeneratedStore(),
        loader=loader or ConfigLoader(),
        fetcher=fetcher or FakeFetcher({}),
        allow_cyclic=allow_cyclic,
        max_workers=max_workers
    )


def names(dependencies):
    return [d.name for d in dependencies]


@pytest.mark.asyncio
async def test_no_declarations_resolve_to_empty_list(tmp_path):
    root = write_project(tmp_path / "app")
    assert await make_resolver(root).resolve() == []


@pytest.mark.asyncio
async def test_chain_is_ordered_dependencies_first(tmp_path):
    write_project(tmp_path / "cache")
    write_project(tmp_path / "db", dependencies=[dep("../cache")])
    root = write_project(tmp_path / "app", dependencies=[dep("../db")])

    resolved = await make_resolver(root).resolve()

    assert names(resolved) == ["cache", "db"]
    assert names(resolved[1].children) == ["cache"]
    assert resolved[1].parent_identity is None
    assert resolved[0].parent_identity == resolved[1].identity


@pytest.mark.asyncio
async def test_diamond_resolves_each_identity_once(tmp_path):
    write_project(tmp_path / "base")
    write_project(tmp_path / "left", dependencies=[dep("../base")])
    write_project(tmp_path / "right", dependencies=[dep("../base")])
    root = write_project(tmp_path / "app", dependencies=[dep("../left"), dep("../right")])
    loader = CountingLoader()

    resolved = await make_resolver(root, loader=loader).resolve()

    assert names(resolved) == ["base", "left", "right"]
    assert len({d.identity for d in resolved}) == 3
    assert all(count == 1 for count in loader.loads.values())


@pytest.mark.asyncio
async def test_declaration_order_is_respected(tmp_path):
    for name in ("zeta", "alpha", "mid"):
        write_project(tmp_path / name)
    root = write_project(tmp_path / "app", dependencies=[dep("../zeta"), dep("../alpha"), dep("../mid")])

    assert names(await make_resolver(root).resolve()) == ["zeta", "alpha", "mid"]


@pytest.mark.asyncio
async def test_cycle_raises_without_allow_cyclic(tmp_path):
    write_project(tmp_path / "a", dependencies=[dep("../b")])
    write_project(tmp_path / "b", dependencies=[dep("../a")])
    root = write_project(tmp_path / "app", dependencies=[dep("../a")])

    with pytest.raises(CycleError) as exc_info:
        await make_resolver(root).resolve()

    assert exc_info.value.path == ["a", "b", "a"]
    assert "--allow-cyclic" in str(exc_info.value)


@pytest.mark.asyncio
async def test_cycle_is_tolerated_with_allow_cyclic(tmp_path):
    write_project(tmp_path / "a", dependencies=[dep("../b")])
    write_project(tmp_path / "b", dependencies=[dep("../a")])
    root = write_project(tmp_path / "app", dependencies=[dep("../a")])

    resolved = await make_resolver(root, allow_cyclic=True).resolve()

    assert sorted(names(resolved)) == ["a", "b"]
    assert names(resolved) == ["b", "a"]


@pytest.mark.asyncio
async def test_cycle_through_root_is_detected(tmp_path):
    write_project(tmp_path / "lib", dependencies=[dep("../app")])
    root = write_project(tmp_path / "app", dependencies=[dep("../lib")])

    with pytest.raises(CycleError):
        await make_resolver(root).resolve()

    resolved = await make_resolver(root, allow_cyclic=True).resolve()
    assert names(resolved) == ["lib"]


@pytest.mark.asyncio
async def test_same_source_with_other_profile_is_another_identity(tmp_path):
    write_project(tmp_path / "db", profiles=[{"name": "dev"}, {"name": "prod"}])
    root = write_project(tmp_path / "app", dependencies=[
        dep("../db", profile="dev"),
        dep("../db", profile="prod"),
        dep("../db", profile="dev"),
    ])

    resolved = await make_resolver(root).resolve()

    assert [d.profile for d in resolved] == ["dev", "prod"]
    assert resolved[0].identity != resolved[1].identity


@pytest.mark.asyncio
async def test_identities_are_stable_across_runs(tmp_path):
    write_project(tmp_path / "db")
    root = write_project(tmp_path / "app", dependencies=[dep("../db")])

    first = await make_resolver(root).resolve()
    second = await make_resolver(root).resolve()

    assert [d.identity for d in first] == [d.identity for d in second]


@pytest.mark.asyncio
async def test_ignore_dependencies_stops_recursion(tmp_path):
    write_project(tmp_path / "deep")
    write_project(tmp_path / "db", dependencies=[dep("../deep")])
    root = write_project(tmp_path / "app", dependencies=[dep("../db", ignore_dependencies=True)])

    resolved = await make_resolver(root).resolve()

    assert names(resolved) == ["db"]
    assert resolved[0].children == []


@pytest.mark.asyncio
async def test_failure_blocks_only_its_dependents(tmp_path):
    write_project(tmp_path / "ok")
    write_project(tmp_path / "parent", dependencies=[dep("../missing")])
    root = write_project(tmp_path / "app", dependencies=[dep("../parent"), dep("../ok")])

    with pytest.raises(DependencyResolutionError) as exc_info:
        await make_resolver(root).resolve()

    error = exc_info.value
    assert len(error.errors) == 1
    assert isinstance(error.errors[0], ConfigError)
    assert names(error.resolved) == ["ok"]


@pytest.mark.asyncio
async def test_invalid_child_config_is_reported(tmp_path):
    broken = tmp_path / "broken"
    broken.mkdir()
    (broken / "devflow.yaml").write_text("images: [not, a, mapping]\n")
    write_project(tmp_path / "ok")
    root = write_project(tmp_path / "app", dependencies=[dep("../broken"), dep("../ok")])

    with pytest.raises(DependencyResolutionError) as exc_info:
        await make_resolver(root).resolve()

    assert "broken" in str(exc_info.value)
    assert names(exc_info.value.resolved) == ["ok"]


@pytest.mark.asyncio
async def test_child_with_list_vars_does_not_stop_siblings(tmp_path):
    bad = tmp_path / "bad"
    bad.mkdir()
    (bad / "devflow.yaml").write_text("vars: [not, a, mapping]\n")
    write_project(tmp_path / "ok")
    root = write_project(tmp_path / "app", dependencies=[dep("../bad"), dep("../ok")])

    with pytest.raises(DependencyResolutionError) as exc_info:
        await make_resolver(root).resolve()

    error = exc_info.value
    assert len(error.errors) == 1
    assert isinstance(error.errors[0], ConfigError)
    assert str(bad / "devflow.yaml") in str(error.errors[0])
    assert names(error.resolved) == ["ok"]


@pytest.mark.asyncio
async def test_remote_sources_go_through_the_fetcher(tmp_path):
    repo = tmp_path / "repo"
    write_project(repo / "services" / "db", name="db")
    write_project(tmp_path / "cache")
    root = write_project(tmp_path / "app", dependencies=[
        {"source": {"git": "https://example.com/repo.git", "branch": "main", "sub_path": "services/db"}},
    ])
    fetcher = FakeFetcher({"https://example.com/repo.git": repo})

    resolved = await make_resolver(root, fetcher=fetcher).resolve(update=True)

    assert names(resolved) == ["db"]
    assert resolved[0].source_key == "https://example.com/repo.git@main:services/db"
    assert fetcher.fetches == [("https://example.com/repo.git", True)]


@pytest.mark.asyncio
async def test_fetch_failure_is_aggregated(tmp_path):
    write_project(tmp_path / "ok")
    root = write_project(tmp_path / "app", dependencies=[
        {"source": {"git": "https://example.com/gone.git"}},
        dep("../ok"),
    ])

    with pytest.raises(DependencyResolutionError) as exc_info:
        await make_resolver(root).resolve()

    assert isinstance(exc_info.value.errors[0], SourceFetchError)
    assert names(exc_info.value.resolved) == ["ok"]


@pytest.mark.asyncio
async def test_resolution_with_single_worker(tmp_path):
    write_project(tmp_path / "base")
    write_project(tmp_path / "left", dependencies=[dep("../base")])
    write_project(tmp_path / "right", dependencies=[dep("../base")])
    root = write_project(tmp_path / "app", dependencies=[dep("../left"), dep("../right")])

    resolved = await make_resolver(root, max_workers=1).resolve()

    assert names(resolved) == ["base", "left", "right"]
