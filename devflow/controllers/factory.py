"""Controller backend factory"""

from typing import Any, Dict, List, Tuple, Type

from .base import BuildController, DeployController
from .shell import ShellBuildController, ShellDeployController
from ..api.exceptions import ConfigError
from ..constants import DEFAULT_CONTROLLER_BACKEND


class ControllerFactory:
    """Factory for creating build and deploy controllers"""

    # Registry of controller backends
    _backends: Dict[str, Tuple[Type[BuildController], Type[DeployController]]] = {
        DEFAULT_CONTROLLER_BACKEND: (ShellBuildController, ShellDeployController),
    }

    @classmethod
    def _get(cls, backend: str) -> Tuple[Type[BuildController], Type[DeployController]]:
        if backend not in cls._backends:
            raise ConfigError(f"Unsupported controller backend: {backend}")
        return cls._backends[backend]

    @classmethod
    def create_build_controller(cls, backend: str = DEFAULT_CONTROLLER_BACKEND, **kwargs: Any) -> BuildController:
        """Create build controller

        Args:
            backend: Backend name
            **kwargs: Backend-specific arguments

        Returns:
            Build controller instance

        Raises:
            ConfigError: If backend is not supported
        """
        build_class, _ = cls._get(backend)
        return build_class(**kwargs)

    @classmethod
    def create_deploy_controller(cls, backend: str = DEFAULT_CONTROLLER_BACKEND, **kwargs: Any) -> DeployController:
        """Create deploy controller

        Args:
            backend: Backend name
            **kwargs: Backend-specific arguments

        Returns:
            Deploy controller instance

        Raises:
            ConfigError: If backend is not supported
        """
        _, deploy_class = cls._get(backend)
        return deploy_class(**kwargs)

    @classmethod
    def register_backend(cls,
                         backend: str,
                         build_class: Type[BuildController],
                         deploy_class: Type[DeployController]):
        """Register a new controller backend

        Args:
            backend: Backend name
            build_class: Build controller class
            deploy_class: Deploy controller class
        """
        cls._backends[backend] = (build_class, deploy_class)

    @classmethod
    def get_supported_backends(cls) -> List[str]:
        """Get list of supported backend names"""
        return list(cls._backends.keys())
