"""Pydantic models for wave scheduling.

This module defines the task-set document structures consumed by the
scheduler (tasks, dependency metadata, precomputed execution strategy)
and the wave plan structures it produces.
"""

from enum import Enum
from typing import Any

from loguru import logger
from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    field_validator,
    model_validator,
)


# =============================================================================
# ENUMS
# =============================================================================


class TaskKind(str, Enum):
    """Kind of task in a task set."""

    PARENT = "parent"
    SUBTASK = "subtask"


class TaskStatus(str, Enum):
    """Execution status of a task."""

    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    PASS = "pass"
    BLOCKED = "blocked"


def _coerce_id(value: Any) -> Any:
    # tasks.json ids are often written as bare numbers
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    return value


def _coerce_id_list(value: Any) -> Any:
    if value is None:
        return []
    if isinstance(value, (list, tuple, set)):
        return [_coerce_id(v) for v in value]
    return value


# =============================================================================
# TASKS
# =============================================================================


class DependencyInfo(BaseModel):
    """Dependency and isolation metadata attached to a parent task.

    Example:
        >>> info = DependencyInfo(
        ...     blocked_by=["1"],
        ...     isolation_score=0.9,
        ...     shared_files=["src/models/user.ts"],
        ... )
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    blocked_by: list[str] = Field(
        default_factory=list,
        description="Task IDs that must complete first",
    )
    can_parallel_with: list[str] = Field(
        default_factory=list,
        description="Advisory list of tasks this one may run beside",
    )
    isolation_score: float | None = Field(
        default=None,
        ge=0.0,
        le=1.0,
        description="How non-overlapping this task's file touches are (0-1)",
    )
    shared_files: list[str] = Field(
        default_factory=list,
        description="Files this task is expected to touch",
    )

    @field_validator("blocked_by", "can_parallel_with", mode="before")
    @classmethod
    def coerce_ids(cls, v: Any) -> Any:
        """Accept numeric task ids."""
        return _coerce_id_list(v)

    @field_validator("shared_files", mode="before")
    @classmethod
    def default_files(cls, v: Any) -> Any:
        """Treat null as no files."""
        return [] if v is None else v


class Task(BaseModel):
    """A unit of work in a task set.

    The task-set document spells ``kind`` as ``type``; both are accepted.

    Example:
        >>> task = Task(id="2", kind="parent", dependency_info={"blocked_by": ["1"]})
        >>> task.blocked_by
        ['1']
    """

    model_config = ConfigDict(frozen=True, extra="ignore", populate_by_name=True)

    id: str = Field(..., min_length=1, description="Unique task identifier")
    kind: TaskKind = Field(default=TaskKind.PARENT, description="parent or subtask")
    status: TaskStatus = Field(default=TaskStatus.PENDING, description="Execution status")
    parent: str | None = Field(default=None, description="Parent task of a subtask")
    title: str | None = Field(default=None, description="Short task title")
    description: str | None = Field(default=None, description="Task description")
    dependency_info: DependencyInfo | None = Field(
        default=None,
        description="Dependency and isolation metadata",
    )

    @model_validator(mode="before")
    @classmethod
    def accept_type_alias(cls, data: Any) -> Any:
        """Map the document's ``type`` key onto ``kind``."""
        if isinstance(data, dict) and "kind" not in data and "type" in data:
            data = {**data, "kind": data["type"]}
        return data

    @field_validator("id", "parent", mode="before")
    @classmethod
    def coerce_task_id(cls, v: Any) -> Any:
        """Accept numeric task ids."""
        return _coerce_id(v)

    @property
    def is_parent(self) -> bool:
        """Check if this task is a schedulable parent task."""
        return self.kind == TaskKind.PARENT

    @property
    def is_complete(self) -> bool:
        """Check if this task has already passed."""
        return self.status == TaskStatus.PASS

    @property
    def blocked_by(self) -> list[str]:
        """Get the IDs this task waits on."""
        if self.dependency_info is None:
            return []
        return list(self.dependency_info.blocked_by)

    @property
    def shared_files(self) -> list[str]:
        """Get the files this task expects to touch."""
        if self.dependency_info is None:
            return []
        return list(self.dependency_info.shared_files)

    def isolation_score(self, default: float) -> float:
        """Get the declared isolation score, or ``default`` if none was declared."""
        if self.dependency_info is None or self.dependency_info.isolation_score is None:
            return default
        return self.dependency_info.isolation_score


# =============================================================================
# WAVES
# =============================================================================


class Wave(BaseModel):
    """A group of tasks whose dependencies are satisfied by earlier waves."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    wave_id: int = Field(..., ge=1, description="1-based wave number")
    tasks: list[str] = Field(default_factory=list, description="Task IDs in this wave")
    can_parallel: bool = Field(default=False, description="Safe to run tasks concurrently")
    isolation_score: float = Field(
        default=1.0,
        ge=0.0,
        le=1.0,
        description="Aggregate isolation of the wave",
    )
    rationale: str = Field(default="", description="Human-readable justification")
    estimated_duration: float = Field(
        default=0.0,
        ge=0.0,
        description="Estimated wave duration in minutes",
    )

    @field_validator("tasks", mode="before")
    @classmethod
    def coerce_task_ids(cls, v: Any) -> Any:
        """Accept numeric task ids."""
        return _coerce_id_list(v)

    @property
    def size(self) -> int:
        """Number of tasks in the wave."""
        return len(self.tasks)


class ExecutionStrategy(BaseModel):
    """Precomputed waves stored alongside the tasks in a task-set document."""

    model_config = ConfigDict(extra="ignore")

    waves: list[Wave] = Field(default_factory=list)
    dependency_graph: dict[str, list[str]] | None = Field(default=None)

    @field_validator("dependency_graph", mode="before")
    @classmethod
    def coerce_graph(cls, v: Any) -> Any:
        """Accept numeric ids as keys and values."""
        if isinstance(v, dict):
            return {str(k): _coerce_id_list(deps) for k, deps in v.items()}
        return v


class TaskSet(BaseModel):
    """A task-set document (``tasks.json``).

    Example:
        >>> task_set = TaskSet.model_validate(json.loads(path.read_text()))
        >>> [t.id for t in task_set.eligible_tasks()]
        ['1', '2', '3']
    """

    model_config = ConfigDict(extra="ignore")

    spec: str | None = Field(default=None, description="Spec this task set belongs to")
    tasks: list[Task] = Field(default_factory=list)
    execution_strategy: ExecutionStrategy | None = Field(default=None)

    @field_validator("spec", mode="before")
    @classmethod
    def spec_name(cls, v: Any) -> Any:
        """Some documents store the spec as an object with a name."""
        if isinstance(v, dict):
            return v.get("name")
        return v

    @field_validator("execution_strategy", mode="before")
    @classmethod
    def lenient_strategy(cls, v: Any) -> Any:
        """A malformed stored strategy is dropped so waves are recomputed."""
        if v is None or isinstance(v, ExecutionStrategy):
            return v
        try:
            return ExecutionStrategy.model_validate(v)
        except ValidationError as e:
            logger.warning(
                f"Ignoring malformed stored execution strategy ({e.error_count()} errors)"
            )
            return None

    def get_task(self, task_id: str) -> Task | None:
        """Get a task by ID."""
        for task in self.tasks:
            if task.id == task_id:
                return task
        return None

    def parent_tasks(self) -> list[Task]:
        """Get all parent tasks."""
        return [t for t in self.tasks if t.is_parent]

    def eligible_tasks(self) -> list[Task]:
        """Get parent tasks that still need to run."""
        return [t for t in self.tasks if t.is_parent and not t.is_complete]

    def summary(self) -> dict[str, int]:
        """Count tasks by kind and status."""
        return {
            "total_tasks": len(self.tasks),
            "parent_tasks": sum(1 for t in self.tasks if t.kind == TaskKind.PARENT),
            "subtasks": sum(1 for t in self.tasks if t.kind == TaskKind.SUBTASK),
            "completed": sum(1 for t in self.tasks if t.status == TaskStatus.PASS),
            "in_progress": sum(1 for t in self.tasks if t.status == TaskStatus.IN_PROGRESS),
            "pending": sum(1 for t in self.tasks if t.status == TaskStatus.PENDING),
            "blocked": sum(1 for t in self.tasks if t.status == TaskStatus.BLOCKED),
        }


# =============================================================================
# SCHEDULER RESULTS
# =============================================================================


class WavePlan(BaseModel):
    """Output of wave identification, including any stuck tasks."""

    model_config = ConfigDict(frozen=True)

    waves: list[Wave] = Field(default_factory=list)
    stuck_tasks: list[str] = Field(
        default_factory=list,
        description="Tasks that could not be placed in any wave",
    )
    cycles: list[list[str]] = Field(
        default_factory=list,
        description="Dependency cycles found among stuck tasks",
    )
    diagnostics: list[str] = Field(default_factory=list)

    @property
    def has_cycle(self) -> bool:
        """Check if a dependency cycle was detected."""
        return bool(self.cycles)

    @property
    def is_complete(self) -> bool:
        """Check if every eligible task was assigned to a wave."""
        return not self.stuck_tasks

    def wave_of(self, task_id: str) -> int | None:
        """Get the wave ID containing a task."""
        for wave in self.waves:
            if task_id in wave.tasks:
                return wave.wave_id
        return None


class ParallelizationAnalysis(BaseModel):
    """Complete parallelization analysis for a task set."""

    model_config = ConfigDict(frozen=True)

    waves: list[Wave] = Field(default_factory=list)
    dependency_graph: dict[str, list[str]] = Field(default_factory=dict)
    max_concurrent_workers: int = Field(default=1, ge=1)
    estimated_speedup: float = Field(default=1.0)
    stuck_tasks: list[str] = Field(default_factory=list)
    cycles: list[list[str]] = Field(default_factory=list)
    diagnostics: list[str] = Field(default_factory=list)
    unknown_dependencies: dict[str, list[str]] = Field(default_factory=dict)

    @property
    def has_cycle(self) -> bool:
        """Check if a dependency cycle was detected."""
        return bool(self.cycles)

    @property
    def is_complete(self) -> bool:
        """Check if every eligible task was scheduled."""
        return not self.stuck_tasks

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return self.model_dump(mode="json")
