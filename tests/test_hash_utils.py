"""Tests for content hashing"""

import os
import sys
from pathlib import PurePosixPath

import pytest

from devflow.api.exceptions import HashError
from devflow.constants import DEFAULT_HASH_EXCLUDES
from devflow.utils.hash_utils import (
    calculate_directory_hash,
    calculate_directory_hash_async,
    calculate_string_hash,
    is_excluded,
    short_hash,
)


@pytest.fixture
def tree(tmp_path):
    root = tmp_path / "src"
    (root / "pkg").mkdir(parents=True)
    (root / "pkg" / "module.py").write_text("print('hello')\n")
    (root / "README.md").write_text("readme\n")
    (root / ".git").mkdir()
    (root / ".git" / "HEAD").write_text("ref: refs/heads/main\n")
    return root


def test_hash_is_idempotent(tree):
    assert calculate_directory_hash(tree) == calculate_directory_hash(tree)


def test_hash_changes_with_content(tree):
    before = calculate_directory_hash(tree, DEFAULT_HASH_EXCLUDES)
    (tree / "pkg" / "module.py").write_text("print('bye')\n")
    assert calculate_directory_hash(tree, DEFAULT_HASH_EXCLUDES) != before


def test_hash_changes_with_rename(tree):
    before = calculate_directory_hash(tree)
    (tree / "README.md").rename(tree / "README.rst")
    assert calculate_directory_hash(tree) != before


def test_hash_ignores_excluded_entries(tree):
    before = calculate_directory_hash(tree, DEFAULT_HASH_EXCLUDES)
    (tree / ".git" / "HEAD").write_text("ref: refs/heads/other\n")
    (tree / ".devflow").mkdir()
    (tree / ".devflow" / "generated.yaml").write_text("profiles: {}\n")
    assert calculate_directory_hash(tree, DEFAULT_HASH_EXCLUDES) == before


def test_empty_directory_contributes(tree):
    before = calculate_directory_hash(tree)
    (tree / "empty").mkdir()
    assert calculate_directory_hash(tree) != before


def test_added_file_cannot_hide_in_previous_content(tmp_path):
    one = tmp_path / "one"
    two = tmp_path / "two"
    one.mkdir()
    two.mkdir()
    (one / "a").write_bytes(b"foo\x00fb\x00bar")
    (two / "a").write_bytes(b"foo")
    (two / "b").write_bytes(b"bar")

    assert calculate_directory_hash(one) != calculate_directory_hash(two)


@pytest.mark.asyncio
async def test_added_file_cannot_hide_in_previous_content_async(tmp_path):
    one = tmp_path / "one"
    two = tmp_path / "two"
    one.mkdir()
    two.mkdir()
    (one / "a").write_bytes(b"foo\x00fb\x00bar")
    (two / "a").write_bytes(b"foo")
    (two / "b").write_bytes(b"bar")

    assert await calculate_directory_hash_async(one) != await calculate_directory_hash_async(two)


def test_file_and_directory_with_same_name_differ(tmp_path):
    a = tmp_path / "a"
    b = tmp_path / "b"
    a.mkdir()
    b.mkdir()
    (a / "thing").write_text("")
    (b / "thing").mkdir()
    assert calculate_directory_hash(a) != calculate_directory_hash(b)


def test_directory_only_pattern(tree):
    (tree / "build").mkdir()
    (tree / "build" / "out.bin").write_bytes(b"\x00\x01")
    with_build = calculate_directory_hash(tree, ["build/"])

    (tree / "build" / "out.bin").write_bytes(b"\x02")
    assert calculate_directory_hash(tree, ["build/"]) == with_build

    # A file called build is not matched by a directory pattern
    assert not is_excluded(PurePosixPath("build"), False, ["build/"])
    assert is_excluded(PurePosixPath("build"), True, ["build/"])


def test_glob_patterns_match_components(tree):
    assert is_excluded(PurePosixPath("pkg/module.pyc"), False, ["*.pyc"])
    assert is_excluded(PurePosixPath("pkg/module.py"), False, ["pkg/*.py"])
    assert not is_excluded(PurePosixPath("pkg/module.py"), False, ["*.pyc"])


@pytest.mark.skipif(sys.platform == "win32", reason="symlinks need privileges on Windows")
def test_symlink_target_is_hashed(tree):
    os.symlink("pkg/module.py", tree / "link")
    before = calculate_directory_hash(tree)
    os.remove(tree / "link")
    os.symlink("README.md", tree / "link")
    assert calculate_directory_hash(tree) != before


def test_missing_root_raises(tmp_path):
    with pytest.raises(HashError):
        calculate_directory_hash(tmp_path / "missing")


def test_file_root_raises(tmp_path):
    path = tmp_path / "file.txt"
    path.write_text("x")
    with pytest.raises(HashError):
        calculate_directory_hash(path)


@pytest.mark.asyncio
async def test_async_hash_matches_sync(tree):
    expected = calculate_directory_hash(tree, DEFAULT_HASH_EXCLUDES)
    assert await calculate_directory_hash_async(tree, DEFAULT_HASH_EXCLUDES) == expected


def test_string_hash_and_short_hash():
    digest = calculate_string_hash("/srv/db#dev")
    assert digest == calculate_string_hash("/srv/db#dev")
    assert digest != calculate_string_hash("/srv/db#prod")
    assert short_hash(digest) == digest[:12]
