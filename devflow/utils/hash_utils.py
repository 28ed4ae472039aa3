"""Hash calculation utilities"""

import fnmatch
import hashlib
import os
from pathlib import Path, PurePosixPath
from typing import Iterable, Iterator, List, Optional, Sequence, Tuple

import aiofiles

from ..api.exceptions import HashError
from ..constants import DEFAULT_CHUNK_SIZE, DEFAULT_HASH_ALGORITHM

# Entry kinds mixed into the digest so that a file and a directory with the
# same relative path never hash alike.
_KIND_FILE = b"f"
_KIND_DIR = b"d"
_KIND_LINK = b"l"


def calculate_content_hash(content: bytes, algorithm: str = DEFAULT_HASH_ALGORITHM) -> str:
    """
    Calculate hash of content bytes

    Args:
        content: Content bytes
        algorithm: Hash algorithm

    Returns:
        Hex digest string
    """
    hash_func = hashlib.new(algorithm)
    hash_func.update(content)
    return hash_func.hexdigest()


def calculate_string_hash(text: str,
                          algorithm: str = DEFAULT_HASH_ALGORITHM,
                          encoding: str = "utf-8") -> str:
    """
    Calculate hash of string

    Args:
        text: Text string
        algorithm: Hash algorithm
        encoding: Text encoding

    Returns:
        Hex digest string
    """
    return calculate_content_hash(text.encode(encoding), algorithm)


def is_excluded(rel_path: PurePosixPath, is_dir: bool, excludes: Sequence[str]) -> bool:
    """
    Check a relative path against exclusion globs

    A pattern matches the whole relative path or any single component of it.
    Patterns ending in '/' only match directories.

    Args:
        rel_path: Path relative to the hashed root
        is_dir: Whether the entry is a directory
        excludes: fnmatch-style patterns

    Returns:
        True if the entry must be skipped
    """
    path_str = rel_path.as_posix()
    for pattern in excludes:
        dir_only = pattern.endswith('/')
        pattern = pattern.rstrip('/')
        if not pattern:
            continue
        if dir_only and not is_dir:
            continue
        if fnmatch.fnmatchcase(path_str, pattern):
            return True
        if '/' not in pattern and fnmatch.fnmatchcase(rel_path.name, pattern):
            return True
    return False


def iter_tree(directory: Path,
              excludes: Sequence[str] = (),
              follow_symlinks: bool = False) -> Iterator[Tuple[PurePosixPath, Path, bytes]]:
    """
    Walk a directory tree in a stable order

    Args:
        directory: Root directory
        excludes: Exclusion patterns
        follow_symlinks: Descend into symlinked directories

    Yields:
        Tuples of (relative path, absolute path, entry kind)

    Raises:
        HashError: If the root does not exist or a directory cannot be listed
    """
    directory = Path(directory)
    if not directory.exists():
        raise HashError(str(directory), "directory does not exist")
    if not directory.is_dir():
        raise HashError(str(directory), "not a directory")

    # Explicit stack keeps symlink loops from recursing forever
    visited = set()
    stack: List[Tuple[Path, PurePosixPath]] = [(directory, PurePosixPath())]

    while stack:
        current, rel_current = stack.pop()
        real = os.path.realpath(current)
        if real in visited:
            continue
        visited.add(real)

        try:
            entries = sorted(os.scandir(current), key=lambda e: e.name)
        except OSError as e:
            raise HashError(str(current), e.strerror or str(e))

        children = []
        for entry in entries:
            rel_path = rel_current / entry.name
            is_link = entry.is_symlink()
            is_dir = entry.is_dir(follow_symlinks=follow_symlinks)
            if is_excluded(rel_path, is_dir, excludes):
                continue

            if is_link and not follow_symlinks:
                yield rel_path, Path(entry.path), _KIND_LINK
            elif is_dir:
                yield rel_path, Path(entry.path), _KIND_DIR
                children.append((Path(entry.path), rel_path))
            elif is_link and not os.path.exists(entry.path):
                # Dangling link, hash its target text
                yield rel_path, Path(entry.path), _KIND_LINK
            else:
                yield rel_path, Path(entry.path), _KIND_FILE

        # Reverse so that the sorted order is preserved when popping
        stack.extend(reversed(children))


def _update_entry(hash_func, rel_path: PurePosixPath, kind: bytes, content_digest: bytes = b"") -> None:
    # Content enters as a fixed-size digest so entries cannot run into each other
    hash_func.update(kind)
    hash_func.update(rel_path.as_posix().encode('utf-8'))
    hash_func.update(b'\x00')
    hash_func.update(content_digest)


def _link_digest(path: Path, algorithm: str) -> bytes:
    return hashlib.new(algorithm, os.readlink(path).encode('utf-8')).digest()


def calculate_directory_hash(directory: Path,
                             excludes: Optional[Iterable[str]] = None,
                             algorithm: str = DEFAULT_HASH_ALGORITHM,
                             follow_symlinks: bool = False,
                             chunk_size: int = DEFAULT_CHUNK_SIZE) -> str:
    """
    Calculate hash of directory contents and structure

    Every file, directory and symlink outside the exclusion set contributes
    its relative path and kind; files add the digest of their bytes and
    symlinks the digest of their target text. Two runs over an unchanged
    tree produce the same digest.

    Args:
        directory: Directory path
        excludes: Exclusion patterns (see is_excluded)
        algorithm: Hash algorithm
        follow_symlinks: Hash symlink targets instead of link text
        chunk_size: Read chunk size

    Returns:
        Hex digest of directory structure

    Raises:
        HashError: If the directory is missing or unreadable
    """
    excludes = list(excludes or [])
    hash_func = hashlib.new(algorithm)

    for rel_path, abs_path, kind in iter_tree(directory, excludes, follow_symlinks):
        content_digest = b""
        if kind == _KIND_LINK:
            content_digest = _link_digest(abs_path, algorithm)
        elif kind == _KIND_FILE:
            file_hash = hashlib.new(algorithm)
            try:
                with open(abs_path, 'rb') as f:
                    while chunk := f.read(chunk_size):
                        file_hash.update(chunk)
            except OSError as e:
                raise HashError(str(abs_path), e.strerror or str(e))
            content_digest = file_hash.digest()

        _update_entry(hash_func, rel_path, kind, content_digest)

    return hash_func.hexdigest()


async def calculate_directory_hash_async(directory: Path,
                                         excludes: Optional[Iterable[str]] = None,
                                         algorithm: str = DEFAULT_HASH_ALGORITHM,
                                         follow_symlinks: bool = False,
                                         chunk_size: int = DEFAULT_CHUNK_SIZE) -> str:
    """
    Calculate directory hash asynchronously

    Produces the same digest as calculate_directory_hash.

    Args:
        directory: Directory path
        excludes: Exclusion patterns
        algorithm: Hash algorithm
        follow_symlinks: Hash symlink targets instead of link text
        chunk_size: Read chunk size

    Returns:
        Hex digest string
    """
    excludes = list(excludes or [])
    hash_func = hashlib.new(algorithm)

    for rel_path, abs_path, kind in iter_tree(directory, excludes, follow_symlinks):
        content_digest = b""
        if kind == _KIND_LINK:
            content_digest = _link_digest(abs_path, algorithm)
        elif kind == _KIND_FILE:
            file_hash = hashlib.new(algorithm)
            try:
                async with aiofiles.open(abs_path, 'rb') as f:
                    while True:
                        chunk = await f.read(chunk_size)
                        if not chunk:
                            break
                        file_hash.update(chunk)
            except OSError as e:
                raise HashError(str(abs_path), e.strerror or str(e))
            content_digest = file_hash.digest()

        _update_entry(hash_func, rel_path, kind, content_digest)

    return hash_func.hexdigest()


def short_hash(digest: str, length: int = 12) -> str:
    """Shorten a hex digest for display and tags"""
    return digest[:length]
