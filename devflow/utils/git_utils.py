"""Git operation utilities"""

import subprocess
from pathlib import Path
from typing import List, Optional, Sequence

from .async_utils import CommandResult, run_command


class GitCommandError(Exception):
    """A git command exited with a non-zero status"""

    def __init__(self, result: CommandResult):
        super().__init__(f"{' '.join(result.args)} failed with {result.describe()}")
        self.result = result


def is_git_repository(path: Path) -> bool:
    """
    Check if directory is a Git repository

    Args:
        path: Directory path

    Returns:
        True if it's a Git repository
    """
    if not Path(path).is_dir():
        return False
    try:
        result = subprocess.run(
            ['git', 'rev-parse', '--is-inside-work-tree'],
            cwd=path,
            capture_output=True,
            text=True
        )
        return result.returncode == 0
    except (subprocess.CalledProcessError, FileNotFoundError):
        return False


async def git(args: Sequence[str],
              cwd: Optional[Path] = None,
              timeout: Optional[float] = None) -> CommandResult:
    """
    Run a git command

    Args:
        args: Arguments after 'git'
        cwd: Working directory
        timeout: Seconds before the command is killed

    Returns:
        CommandResult of the successful command

    Raises:
        GitCommandError: If git exits with a non-zero status
    """
    result = await run_command(
        ['git', *args],
        cwd=cwd,
        env={'GIT_TERMINAL_PROMPT': '0'},
        timeout=timeout
    )
    if not result.ok:
        raise GitCommandError(result)
    return result


async def clone(url: str,
                target: Path,
                branch: Optional[str] = None,
                shallow: bool = True,
                extra_args: Sequence[str] = ()) -> None:
    """
    Clone a repository

    Args:
        url: Repository URL
        target: Destination directory (must not exist)
        branch: Branch or tag to check out
        shallow: Clone with depth 1
        extra_args: Additional arguments for git clone
    """
    args: List[str] = ['clone']
    if shallow:
        args.extend(['--depth', '1'])
    if branch:
        args.extend(['--branch', branch])
    args.extend(extra_args)
    args.extend([url, str(target)])
    await git(args)


async def fetch(path: Path, ref: Optional[str] = None, shallow: bool = False) -> None:
    """
    Fetch from origin

    Args:
        path: Repository path
        ref: Ref to fetch, all refs when omitted
        shallow: Keep the repository shallow
    """
    args = ['fetch', '--tags', 'origin']
    if shallow:
        args.extend(['--depth', '1'])
    if ref:
        args.append(ref)
    await git(args, cwd=path)


async def checkout(path: Path, ref: str) -> None:
    """
    Check out a ref, discarding local changes

    Args:
        path: Repository path
        ref: Branch, tag or commit
    """
    await git(['checkout', '--force', ref], cwd=path)


async def reset_hard(path: Path, ref: str) -> None:
    """Reset the working tree to a ref"""
    await git(['reset', '--hard', ref], cwd=path)
