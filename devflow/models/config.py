"""Project configuration data models"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from .dependency import DependencyConfig
from ..api.exceptions import ConfigError
from ..constants import CONFIG_VERSION


def require_mapping(value: Any, what: str) -> Dict[str, Any]:
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise ConfigError(f"'{what}' must be a mapping")
    return value


def require_list(value: Any, what: str) -> List[Any]:
    if value is None:
        return []
    if not isinstance(value, list):
        raise ConfigError(f"'{what}' must be a list")
    return value


@dataclass
class ImageConfig:
    """An image the project builds"""

    name: str
    image: str
    context: str = "."
    build: Optional[str] = None
    push: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary"""
        data = {"image": self.image, "context": self.context}
        if self.build:
            data["build"] = self.build
        if self.push:
            data["push"] = self.push
        return data

    @classmethod
    def from_dict(cls, name: str, data: Dict[str, Any]) -> 'ImageConfig':
        """Create from dictionary"""
        data = require_mapping(data, f"images.{name}")
        if not data.get("image"):
            raise ConfigError(f"image '{name}' requires 'image'")
        return cls(
            name=name,
            image=data["image"],
            context=data.get("context", "."),
            build=data.get("build"),
            push=data.get("push")
        )


@dataclass
class DeploymentConfig:
    """A deployment the project applies to the cluster"""

    name: str
    deploy: Optional[str] = None
    purge: Optional[str] = None
    namespace: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary"""
        data = {"name": self.name}
        if self.deploy:
            data["deploy"] = self.deploy
        if self.purge:
            data["purge"] = self.purge
        if self.namespace:
            data["namespace"] = self.namespace
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'DeploymentConfig':
        """Create from dictionary"""
        data = require_mapping(data, "deployments[]")
        if not data.get("name"):
            raise ConfigError("deployment entry requires a 'name'")
        return cls(
            name=data["name"],
            deploy=data.get("deploy"),
            purge=data.get("purge"),
            namespace=data.get("namespace")
        )


@dataclass
class ProfileConfig:
    """A named variant of the project configuration

    Sections left as None keep the top-level value; vars are merged.
    """

    name: str
    vars: Dict[str, str] = field(default_factory=dict)
    images: Optional[Dict[str, Any]] = None
    deployments: Optional[List[Any]] = None
    dependencies: Optional[List[Any]] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ProfileConfig':
        """Create from dictionary"""
        data = require_mapping(data, "profiles[]")
        if not data.get("name"):
            raise ConfigError("profile entry requires a 'name'")
        return cls(
            name=data["name"],
            vars={str(k): str(v) for k, v in require_mapping(data.get("vars"), "vars").items()},
            images=data.get("images"),
            deployments=data.get("deployments"),
            dependencies=data.get("dependencies")
        )


@dataclass
class ProjectConfig:
    """Configuration stored in devflow.yaml"""

    name: str = ""
    version: str = CONFIG_VERSION
    vars: Dict[str, str] = field(default_factory=dict)
    images: Dict[str, ImageConfig] = field(default_factory=dict)
    deployments: List[DeploymentConfig] = field(default_factory=list)
    dependencies: List[DependencyConfig] = field(default_factory=list)
    active_profile: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ProjectConfig':
        """Create from dictionary

        Profiles are not read here; ConfigLoader applies them beforehand.
        """
        data = require_mapping(data, "root")

        variables = require_mapping(data.get("vars"), "vars")
        images = require_mapping(data.get("images"), "images")

        return cls(
            name=str(data.get("name") or ""),
            version=str(data.get("version", CONFIG_VERSION)),
            vars={str(k): str(v) for k, v in variables.items()},
            images={name: ImageConfig.from_dict(name, image) for name, image in images.items()},
            deployments=[
                DeploymentConfig.from_dict(item)
                for item in require_list(data.get("deployments"), "deployments")
            ],
            dependencies=[
                DependencyConfig.from_dict(item)
                for item in require_list(data.get("dependencies"), "dependencies")
            ]
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary"""
        data: Dict[str, Any] = {"version": self.version, "name": self.name}
        if self.vars:
            data["vars"] = dict(self.vars)
        if self.images:
            data["images"] = {name: image.to_dict() for name, image in self.images.items()}
        if self.deployments:
            data["deployments"] = [d.to_dict() for d in self.deployments]
        if self.dependencies:
            data["dependencies"] = [d.to_dict() for d in self.dependencies]
        return data
