"""Exception definitions for devflow"""

from typing import List, Optional, Sequence

from ..constants import ErrorCode


class DevflowError(Exception):
    """Base exception for devflow"""

    def __init__(self, message: str, error_code: str = None):
        super().__init__(message)
        self.error_code = error_code


class ConfigError(DevflowError):
    """Configuration error"""

    def __init__(self, message: str, path: Optional[str] = None):
        if path:
            message = f"{path}: {message}"
        super().__init__(message, ErrorCode.CONFIG_FORMAT_ERROR)
        self.path = path


class SourceFetchError(DevflowError):
    """Remote dependency could not be fetched"""

    def __init__(self, source: str, reason: str):
        super().__init__(f"Failed to fetch {source}: {reason}", ErrorCode.SOURCE_FETCH_FAILED)
        self.source = source
        self.reason = reason


class CycleError(DevflowError):
    """Dependency cycle detected while cyclic graphs are not allowed"""

    def __init__(self, path: Sequence[str]):
        self.path = list(path)
        message = (
            "Cyclic dependency found: " + " -> ".join(self.path) + "\n"
            "Use --allow-cyclic to resolve cyclic dependencies"
        )
        super().__init__(message, ErrorCode.DEPENDENCY_CYCLE)


class HashError(DevflowError):
    """Content hash could not be computed"""

    def __init__(self, path: str, reason: str):
        super().__init__(f"Cannot hash {path}: {reason}", ErrorCode.HASH_FAILED)
        self.path = path


class DependencyError(DevflowError):
    """Error attached to a single dependency"""

    action = "process"
    code = ErrorCode.OPERATION_FAILED

    def __init__(self, identity: str, name: str, cause: BaseException):
        super().__init__(
            f"Failed to {self.action} dependency {name} ({identity[:12]}): {cause}",
            self.code
        )
        self.identity = identity
        self.name = name
        self.cause = cause


class BuildError(DependencyError):
    """Build controller failed for a dependency"""

    action = "build"
    code = ErrorCode.BUILD_FAILED


class DeployError(DependencyError):
    """Deploy controller failed for a dependency"""

    action = "deploy"
    code = ErrorCode.DEPLOY_FAILED


class PurgeError(DependencyError):
    """Purge failed for a dependency"""

    action = "purge"
    code = ErrorCode.PURGE_FAILED


class DependencyResolutionError(DevflowError):
    """One or more dependencies could not be resolved"""

    def __init__(self, errors: List[DevflowError], resolved: list = None):
        self.errors = list(errors)
        self.resolved = list(resolved or [])
        lines = [f"{len(self.errors)} dependency resolution error(s):"]
        lines.extend(f"  - {error}" for error in self.errors)
        super().__init__("\n".join(lines), ErrorCode.RESOLUTION_FAILED)


class OrchestrationError(DevflowError):
    """An orchestration operation finished with failed dependencies"""

    def __init__(self, operation: str, result):
        self.operation = operation
        self.result = result
        errors = result.errors if result is not None else []
        lines = [f"{operation} failed for {len(errors)} dependency(ies):"]
        lines.extend(f"  - {error}" for error in errors)
        super().__init__("\n".join(lines), ErrorCode.OPERATION_FAILED)

    @property
    def errors(self) -> List[DevflowError]:
        return self.result.errors if self.result is not None else []


class StateWriteError(DevflowError):
    """Generated state could not be persisted"""

    def __init__(self, path: str, reason: str):
        super().__init__(f"Failed to write {path}: {reason}", ErrorCode.STATE_WRITE_FAILED)
        self.path = path


class ProjectNotFoundError(DevflowError):
    """Project root not found error"""

    def __init__(self, message: str = None):
        if message is None:
            message = (
                "No project root found. Please ensure:\n"
                "1. You are in a project directory\n"
                "2. The project root contains devflow.yaml\n"
                "3. Or use --project-root to specify the project location"
            )
        super().__init__(message, ErrorCode.SOURCE_NOT_FOUND)
