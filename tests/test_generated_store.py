"""Tests for the generated state store"""

import pytest

from devflow.api.exceptions import ConfigError, StateWriteError
from devflow.core.generated_store import GeneratedStore, InMemoryGeneratedStore
from devflow.models.generated import GeneratedConfig, ImageCache


def test_absent_file_loads_empty(tmp_path):
    store = GeneratedStore(tmp_path / ".devflow" / "generated.yaml")
    config = store.load()
    assert config.active_profile == "default"
    assert config.profiles == {}


@pytest.mark.asyncio
async def test_save_and_reload(tmp_path):
    path = tmp_path / ".devflow" / "generated.yaml"
    store = GeneratedStore(path)
    cache = store.profile("dev")
    cache.dependencies["abc"] = "hash-1"
    cache.deployments["abc"] = "hash-2"
    cache.images["api"] = ImageCache("registry/api", "0123456789ab")

    await store.save()

    reloaded = GeneratedStore(path).load()
    profile = reloaded.get_profile("dev")
    assert profile.dependencies == {"abc": "hash-1"}
    assert profile.deployments == {"abc": "hash-2"}
    assert profile.images["api"].reference == "registry/api:0123456789ab"


@pytest.mark.asyncio
async def test_save_leaves_no_temporary_files(tmp_path):
    path = tmp_path / ".devflow" / "generated.yaml"
    store = GeneratedStore(path)
    store.profile().dependencies["x"] = "y"
    await store.save()
    await store.save()

    assert sorted(p.name for p in path.parent.iterdir()) == ["generated.yaml"]


def test_unparseable_file_raises(tmp_path):
    path = tmp_path / "generated.yaml"
    path.write_text("profiles: [unclosed\n")
    with pytest.raises(ConfigError) as exc_info:
        GeneratedStore(path).load()
    assert str(path) in str(exc_info.value)


@pytest.mark.parametrize("document", [
    "profiles: {default: {dependencies: [a, b]}}\n",
    "profiles: {default: {deployments: deployed}}\n",
    "profiles: {default: {images: [api]}}\n",
    "profiles: {default: {images: {api: registry/api}}}\n",
    "profiles: [default]\n",
])
def test_malformed_ledgers_raise(tmp_path, document):
    path = tmp_path / "generated.yaml"
    path.write_text(document)

    with pytest.raises(ConfigError) as exc_info:
        GeneratedStore(path).load()

    assert str(path) in str(exc_info.value)


@pytest.mark.asyncio
async def test_unwritable_location_raises(tmp_path):
    blocker = tmp_path / "blocker"
    blocker.write_text("a file, not a directory")
    store = GeneratedStore(blocker / "generated.yaml")
    store.load()

    with pytest.raises(StateWriteError):
        await store.save()


def test_profile_locks_are_per_profile(tmp_path):
    store = GeneratedStore(tmp_path / "generated.yaml", GeneratedConfig())
    assert store.lock("dev") is store.lock("dev")
    assert store.lock("dev") is not store.lock("prod")
    assert store.lock() is store.lock("default")


@pytest.mark.asyncio
async def test_in_memory_store_counts_saves():
    store = InMemoryGeneratedStore()
    store.profile().dependencies["a"] = "b"
    await store.save()
    assert store.save_count == 1
    assert store.config.get_active().dependencies == {"a": "b"}


def test_image_reference_keeps_registry_port():
    image = ImageCache.from_reference("registry.local:5000/api:abc123")
    assert image.image_name == "registry.local:5000/api"
    assert image.tag == "abc123"

    untagged = ImageCache.from_reference("registry.local:5000/api")
    assert untagged.image_name == "registry.local:5000/api"
    assert untagged.tag == ""
