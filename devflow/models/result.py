"""Operation result models"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional


class DependencyStatus(Enum):
    """State of a dependency within one operation"""
    PENDING = "pending"
    RESOLVED = "resolved"
    SKIPPED = "skipped"
    SUCCESS = "success"
    FAILED = "failed"
    BLOCKED = "blocked"


class OperationStatus(Enum):
    """Operation status"""
    SUCCESS = "success"
    FAILED = "failed"
    PARTIAL = "partial"
    IN_PROGRESS = "in_progress"


@dataclass
class DependencyResult:
    """Outcome of one dependency within an operation"""

    identity: str
    name: str
    status: DependencyStatus = DependencyStatus.PENDING
    message: str = ""
    error: Optional[Exception] = None
    built: bool = False
    deployed: bool = False
    artifacts: Dict[str, str] = field(default_factory=dict)
    source_hash: Optional[str] = None

    @property
    def is_final(self) -> bool:
        return self.status in (
            DependencyStatus.SKIPPED,
            DependencyStatus.SUCCESS,
            DependencyStatus.FAILED,
            DependencyStatus.BLOCKED,
        )

    def skip(self, reason: str) -> None:
        self.status = DependencyStatus.SKIPPED
        self.message = reason

    def succeed(self, message: str = "") -> None:
        self.status = DependencyStatus.SUCCESS
        self.message = message

    def fail(self, error: Exception) -> None:
        self.status = DependencyStatus.FAILED
        self.error = error
        self.message = str(error)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary"""
        data = {
            "identity": self.identity,
            "name": self.name,
            "status": self.status.value,
            "message": self.message,
        }
        if self.artifacts:
            data["artifacts"] = dict(self.artifacts)
        if self.source_hash:
            data["source_hash"] = self.source_hash
        return data


@dataclass
class OperationResult:
    """Aggregate result of a manager operation"""

    operation: str
    status: OperationStatus = OperationStatus.IN_PROGRESS
    dependencies: List[DependencyResult] = field(default_factory=list)
    errors: List[Exception] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    start_time: datetime = field(default_factory=datetime.now)
    end_time: Optional[datetime] = None

    @property
    def duration(self) -> Optional[float]:
        """Get operation duration in seconds"""
        if self.end_time:
            return (self.end_time - self.start_time).total_seconds()
        return None

    def add(self, result: DependencyResult) -> DependencyResult:
        self.dependencies.append(result)
        return result

    def get(self, identity: str) -> Optional[DependencyResult]:
        for result in self.dependencies:
            if result.identity == identity:
                return result
        return None

    def by_status(self, status: DependencyStatus) -> List[DependencyResult]:
        return [r for r in self.dependencies if r.status == status]

    def add_warning(self, message: str) -> None:
        self.warnings.append(message)

    def complete(self) -> 'OperationResult':
        """Mark operation as complete and derive the status"""
        self.end_time = datetime.now()
        failed = [r for r in self.dependencies
                  if r.status in (DependencyStatus.FAILED, DependencyStatus.BLOCKED)]
        if not self.errors and not failed:
            self.status = OperationStatus.SUCCESS
        elif len(failed) < len(self.dependencies):
            self.status = OperationStatus.PARTIAL
        else:
            self.status = OperationStatus.FAILED
        return self

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary"""
        return {
            "operation": self.operation,
            "status": self.status.value,
            "dependencies": [r.to_dict() for r in self.dependencies],
            "errors": [str(e) for e in self.errors],
            "warnings": self.warnings,
            "duration": self.duration,
        }
