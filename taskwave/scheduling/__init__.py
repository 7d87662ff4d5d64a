"""Wave scheduling - turning task sets into execution waves.

This module provides the scheduling pipeline:
- Loading (tasks.json -> validated TaskSet)
- Graph building (parent tasks -> blocked_by adjacency map)
- Wave identification (graph -> ordered waves with isolation scores)
- Analysis (waves -> worker count and speedup estimate)
"""

from taskwave.scheduling.loader import find_tasks_file, load_execution_strategy, load_task_set
from taskwave.scheduling.models import (
    DependencyInfo,
    ExecutionStrategy,
    ParallelizationAnalysis,
    Task,
    TaskKind,
    TaskSet,
    TaskStatus,
    Wave,
    WavePlan,
)
from taskwave.scheduling.wave_scheduler import (
    WaveScheduler,
    analyze_for_parallelization,
    identify_parallel_waves,
)

__all__ = [
    # Models
    "DependencyInfo",
    "ExecutionStrategy",
    "ParallelizationAnalysis",
    "Task",
    "TaskKind",
    "TaskSet",
    "TaskStatus",
    "Wave",
    "WavePlan",
    # Loading
    "find_tasks_file",
    "load_execution_strategy",
    "load_task_set",
    # Scheduling
    "WaveScheduler",
    "analyze_for_parallelization",
    "identify_parallel_waves",
]
