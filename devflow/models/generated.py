"""Generated state models

The generated config is the per-project document the engine writes back
after each operation. It is keyed by profile name.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from ..api.exceptions import ConfigError
from ..constants import DEFAULT_PROFILE, GENERATED_VERSION


@dataclass
class ImageCache:
    """Last known tag of a built artifact"""

    image_name: str = ""
    tag: str = ""

    @property
    def reference(self) -> str:
        if self.image_name and self.tag:
            return f"{self.image_name}:{self.tag}"
        return self.image_name or self.tag

    def to_dict(self) -> Dict[str, Any]:
        return {"image_name": self.image_name, "tag": self.tag}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ImageCache':
        return cls(image_name=str(data.get("image_name", "")), tag=str(data.get("tag", "")))

    @classmethod
    def from_reference(cls, reference: str) -> 'ImageCache':
        """Split an image:tag reference, keeping registry ports intact"""
        name, sep, tag = reference.rpartition(":")
        if not sep or "/" in tag:
            return cls(image_name=reference)
        return cls(image_name=name, tag=tag)


@dataclass
class CacheConfig:
    """Cached state for one profile"""

    dependencies: Dict[str, str] = field(default_factory=dict)
    deployments: Dict[str, str] = field(default_factory=dict)
    images: Dict[str, ImageCache] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary"""
        return {
            "dependencies": dict(self.dependencies),
            "deployments": dict(self.deployments),
            "images": {name: image.to_dict() for name, image in self.images.items()},
        }

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> 'CacheConfig':
        """Create from dictionary"""
        data = data or {}
        if not isinstance(data, dict):
            raise ConfigError("profile cache must be a mapping")

        ledgers = {}
        for key in ("dependencies", "deployments", "images"):
            value = data.get(key) or {}
            if not isinstance(value, dict):
                raise ConfigError(f"'{key}' must be a mapping")
            ledgers[key] = value

        images = {}
        for name, image in ledgers["images"].items():
            if image is not None and not isinstance(image, dict):
                raise ConfigError(f"image entry '{name}' must be a mapping")
            images[str(name)] = ImageCache.from_dict(image or {})

        return cls(
            dependencies={str(k): str(v) for k, v in ledgers["dependencies"].items()},
            deployments={str(k): str(v) for k, v in ledgers["deployments"].items()},
            images=images
        )


@dataclass
class GeneratedConfig:
    """Generated state document of a project"""

    active_profile: str = DEFAULT_PROFILE
    profiles: Dict[str, CacheConfig] = field(default_factory=dict)
    version: str = GENERATED_VERSION

    def get_profile(self, name: Optional[str] = None) -> CacheConfig:
        """Get the cache of a profile, creating it when absent

        Args:
            name: Profile name, defaults to the active profile

        Returns:
            The profile's CacheConfig
        """
        name = name or self.active_profile or DEFAULT_PROFILE
        if name not in self.profiles:
            self.profiles[name] = CacheConfig()
        return self.profiles[name]

    def get_active(self) -> CacheConfig:
        """Get the cache of the active profile"""
        return self.get_profile(self.active_profile)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary"""
        return {
            "version": self.version,
            "active_profile": self.active_profile,
            "profiles": {name: cache.to_dict() for name, cache in self.profiles.items()},
        }

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> 'GeneratedConfig':
        """Create from dictionary"""
        data = data or {}
        if not isinstance(data, dict):
            raise ConfigError("generated config must be a mapping")
        profiles = data.get("profiles") or {}
        if not isinstance(profiles, dict):
            raise ConfigError("'profiles' must be a mapping")
        return cls(
            active_profile=str(data.get("active_profile") or DEFAULT_PROFILE),
            profiles={str(name): CacheConfig.from_dict(cache) for name, cache in profiles.items()},
            version=str(data.get("version", GENERATED_VERSION))
        )
