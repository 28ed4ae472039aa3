"""Build and deploy controllers for devflow"""

from .base import BuildController, DeployController
from .shell import CommandError, ShellBuildController, ShellDeployController
from .factory import ControllerFactory

__all__ = [
    'BuildController',
    'DeployController',
    'CommandError',
    'ShellBuildController',
    'ShellDeployController',
    'ControllerFactory',
]
