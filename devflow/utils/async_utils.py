# devflow/utils/async_utils.py
"""Asynchronous operation utilities"""

import asyncio
import functools
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Coroutine, Dict, List, Optional, TypeVar, Union

T = TypeVar('T')

logger = logging.getLogger(__name__)


def run_async(coro: Coroutine[Any, Any, T]) -> T:
    """
    Run async coroutine in sync context

    Args:
        coro: Coroutine to run

    Returns:
        Coroutine result
    """
    loop = None
    try:
        loop = asyncio.get_running_loop()
    except RuntimeError:
        # No running loop
        pass

    if loop and loop.is_running():
        # Already in async context, run on a fresh loop in a worker thread
        import threading

        result = None
        exception = None

        def run_in_thread():
            nonlocal result, exception
            try:
                result = asyncio.run(coro)
            except BaseException as e:
                exception = e

        thread = threading.Thread(target=run_in_thread)
        thread.start()
        thread.join()

        if exception:
            raise exception
        return result
    else:
        return asyncio.run(coro)


async def run_in_executor(func: Callable[..., T], *args, **kwargs) -> T:
    """
    Run a blocking function in the default executor

    Args:
        func: Blocking callable
        *args: Positional arguments
        **kwargs: Keyword arguments

    Returns:
        Function result
    """
    loop = asyncio.get_running_loop()
    return await loop.run_in_executor(None, functools.partial(func, *args, **kwargs))


@dataclass
class CommandResult:
    """Outcome of an external command"""

    args: List[str]
    returncode: int
    stdout: str = ""
    stderr: str = ""

    @property
    def ok(self) -> bool:
        return self.returncode == 0

    def describe(self) -> str:
        """Short description used in error messages"""
        output = (self.stderr or self.stdout).strip()
        if len(output) > 500:
            output = "..." + output[-500:]
        return f"exit code {self.returncode}" + (f": {output}" if output else "")


async def run_command(args: Union[List[str], str],
                      cwd: Optional[Path] = None,
                      env: Optional[Dict[str, str]] = None,
                      timeout: Optional[float] = None,
                      shell: bool = False) -> CommandResult:
    """
    Run an external command without blocking the event loop

    The child process is killed when the awaiting task is cancelled or the
    timeout expires.

    Args:
        args: Argument list, or a command line when shell is True
        cwd: Working directory
        env: Extra environment variables merged over os.environ
        timeout: Seconds before the command is killed
        shell: Run through the system shell

    Returns:
        CommandResult with decoded output

    Raises:
        asyncio.TimeoutError: If the timeout expires
        FileNotFoundError: If the executable does not exist
    """
    full_env = os.environ.copy()
    if env:
        full_env.update(env)

    if shell:
        process = await asyncio.create_subprocess_shell(
            args,
            cwd=str(cwd) if cwd else None,
            env=full_env,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE
        )
        display_args = [args]
    else:
        process = await asyncio.create_subprocess_exec(
            *args,
            cwd=str(cwd) if cwd else None,
            env=full_env,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE
        )
        display_args = list(args)

    try:
        stdout, stderr = await asyncio.wait_for(process.communicate(), timeout=timeout)
    except (asyncio.CancelledError, asyncio.TimeoutError):
        if process.returncode is None:
            process.kill()
            await process.wait()
        raise

    result = CommandResult(
        args=display_args,
        returncode=process.returncode,
        stdout=stdout.decode(errors='replace') if stdout else "",
        stderr=stderr.decode(errors='replace') if stderr else ""
    )
    logger.debug("Command %s finished with %s", display_args, result.returncode)
    return result
