"""Persistence of generated state"""

import asyncio
import logging
import os
import tempfile
from pathlib import Path
from typing import Dict, Optional, Union

import aiofiles
import yaml

from ..api.exceptions import ConfigError, StateWriteError
from ..models.generated import CacheConfig, GeneratedConfig

logger = logging.getLogger(__name__)


class GeneratedStore:
    """Loads and persists a project's generated config

    The store never decides when to persist; callers checkpoint with save().
    Writers of a profile must hold lock(profile).
    """

    def __init__(self, path: Union[str, Path], config: Optional[GeneratedConfig] = None):
        """Initialize generated store

        Args:
            path: Location of generated.yaml
            config: Already loaded config (skips reading from disk)
        """
        self.path = Path(path)
        self._config = config
        self._locks: Dict[str, asyncio.Lock] = {}

    @property
    def config(self) -> GeneratedConfig:
        """Get generated config (lazy load)"""
        if self._config is None:
            self._config = self.load()
        return self._config

    def load(self) -> GeneratedConfig:
        """Load generated config from disk

        Returns:
            Loaded config, or an empty one when the file is absent

        Raises:
            ConfigError: If the file exists but cannot be parsed
        """
        if not self.path.exists():
            logger.debug("No generated state at %s, starting empty", self.path)
            self._config = GeneratedConfig()
            return self._config

        try:
            with open(self.path, 'r') as f:
                data = yaml.safe_load(f)
        except (OSError, yaml.YAMLError) as e:
            raise ConfigError(f"cannot read generated state: {e}", str(self.path))

        try:
            self._config = GeneratedConfig.from_dict(data)
        except ConfigError as e:
            if e.path:
                raise
            raise ConfigError(f"invalid generated state: {e}", str(self.path))
        return self._config

    def profile(self, name: Optional[str] = None) -> CacheConfig:
        """Get the cache of a profile (active profile when omitted)"""
        return self.config.get_profile(name)

    def lock(self, profile: Optional[str] = None) -> asyncio.Lock:
        """Get the writer lock of a profile"""
        name = profile or self.config.active_profile
        if name not in self._locks:
            self._locks[name] = asyncio.Lock()
        return self._locks[name]

    async def save(self) -> None:
        """Persist the generated config atomically

        The document is written to a temporary file next to the target and
        renamed over it, so readers never see a truncated file.

        Raises:
            StateWriteError: If the file cannot be written
        """
        content = yaml.safe_dump(self.config.to_dict(), default_flow_style=False, sort_keys=True)

        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                prefix=f".{self.path.name}.",
                suffix=".tmp",
                dir=str(self.path.parent)
            )
            os.close(fd)
        except OSError as e:
            raise StateWriteError(str(self.path), str(e))

        try:
            async with aiofiles.open(tmp_name, 'w') as f:
                await f.write(content)
                await f.flush()
            os.replace(tmp_name, self.path)
        except OSError as e:
            raise StateWriteError(str(self.path), str(e))
        finally:
            if os.path.exists(tmp_name):
                os.unlink(tmp_name)

        logger.debug("Saved generated state to %s", self.path)


class InMemoryGeneratedStore(GeneratedStore):
    """Generated store that never touches the filesystem"""

    def __init__(self, config: Optional[GeneratedConfig] = None):
        super().__init__(Path("<memory>"), config or GeneratedConfig())
        self.save_count = 0

    def load(self) -> GeneratedConfig:
        if self._config is None:
            self._config = GeneratedConfig()
        return self._config

    async def save(self) -> None:
        self.save_count += 1
