"""Wave scheduler - groups tasks into parallel execution waves.

This module turns a task set into an ordered list of waves. Tasks enter a
wave once every task they are blocked by has been placed in an earlier
wave (or has already passed). Each wave carries an aggregate isolation
score that decides whether its tasks may safely run side by side.
"""

import math
from collections import defaultdict
from collections.abc import Iterable, Mapping
from pathlib import Path
from typing import Any

from loguru import logger

from taskwave.core.config import Settings, get_settings
from taskwave.scheduling.loader import load_task_set
from taskwave.scheduling.models import (
    ParallelizationAnalysis,
    Task,
    TaskSet,
    TaskStatus,
    Wave,
    WavePlan,
)


class WaveScheduler:
    """
    Organize parent tasks into dependency-ordered execution waves.

    Heuristic constants (parallel threshold, overlap penalty, duration
    baseline) come from settings and can be overridden per instance.
    The scheduler keeps no state between calls.

    Example:
        >>> scheduler = WaveScheduler()
        >>> analysis = scheduler.analyze_for_parallelization("tasks.json")
        >>> [w.tasks for w in analysis.waves]
        [['1', '2'], ['3']]
        >>> analysis.max_concurrent_workers
        2
    """

    def __init__(
        self,
        settings: Settings | None = None,
        *,
        parallel_threshold: float | None = None,
        overlap_penalty: float | None = None,
        task_baseline_minutes: float | None = None,
        parallel_reduction: float | None = None,
        default_isolation_score: float | None = None,
        strict_dependencies: bool | None = None,
    ) -> None:
        """
        Initialize the scheduler.

        Args:
            settings: Optional settings override. Uses default if not provided.
            parallel_threshold: Minimum aggregate isolation for a parallel wave.
            overlap_penalty: Isolation lost per duplicate shared file.
            task_baseline_minutes: Estimated minutes per task.
            parallel_reduction: Scaling factor for parallel wave estimates.
            default_isolation_score: Score assumed when a task declares none.
            strict_dependencies: Treat ids missing from the task set as unsatisfiable.
        """
        settings = settings or get_settings()

        def pick(value: Any, default: Any) -> Any:
            return default if value is None else value

        self.parallel_threshold = pick(parallel_threshold, settings.parallel_threshold)
        self.overlap_penalty = pick(overlap_penalty, settings.overlap_penalty)
        self.task_baseline_minutes = pick(task_baseline_minutes, settings.task_baseline_minutes)
        self.parallel_reduction = pick(parallel_reduction, settings.parallel_reduction)
        self.default_isolation_score = pick(
            default_isolation_score, settings.default_isolation_score
        )
        self.strict_dependencies = pick(strict_dependencies, settings.strict_dependencies)

    # =========================================================================
    # GRAPH BUILDING
    # =========================================================================

    def build_dependency_graph(self, tasks: Iterable[Task]) -> dict[str, set[str]]:
        """
        Build a dependency graph from parent tasks.

        Subtasks are not schedulable units and are left out entirely.

        Args:
            tasks: Tasks with optional ``dependency_info.blocked_by``.

        Returns:
            Dictionary mapping task_id -> set of task_ids it is blocked by.

        Example:
            >>> scheduler.build_dependency_graph(tasks)
            {'1': set(), '2': {'1'}}
        """
        graph: dict[str, set[str]] = {}
        for task in tasks:
            if not task.is_parent:
                continue
            graph[task.id] = set(task.blocked_by)

        logger.debug(f"Built dependency graph with {len(graph)} parent tasks")
        return graph

    def find_unknown_dependencies(
        self,
        tasks: Iterable[Task],
        graph: Mapping[str, Iterable[str]],
    ) -> dict[str, list[str]]:
        """
        Find dependency references to ids absent from the whole task set.

        Args:
            tasks: Every task in the task set (any kind or status).
            graph: Dependency graph.

        Returns:
            Dictionary mapping task_id -> sorted unknown dependency ids.
        """
        known = {t.id for t in tasks}
        unknown: dict[str, list[str]] = {}
        for task_id, deps in graph.items():
            missing = sorted(d for d in deps if d not in known)
            if missing:
                unknown[task_id] = missing
        return unknown

    def has_dependency_on_group(
        self,
        group_a: Iterable[str],
        group_b: Iterable[str],
        graph: Mapping[str, Iterable[str]],
    ) -> bool:
        """
        Check whether any task in group_a depends on a task in group_b.

        Args:
            group_a: Candidate dependent task IDs.
            group_b: Candidate dependency task IDs.
            graph: Dependency graph.

        Returns:
            True if some task in group_a is blocked by some task in group_b.
        """
        targets = set(group_b)
        return any(
            dep in targets
            for task_id in group_a
            for dep in graph.get(task_id, ())
        )

    # =========================================================================
    # CYCLE DETECTION
    # =========================================================================

    def detect_cycles(self, graph: Mapping[str, Iterable[str]]) -> list[list[str]]:
        """
        Detect cycles in the dependency graph using DFS.

        Args:
            graph: Dependency graph (task_id -> dependency ids).

        Returns:
            List of cycle paths, empty if the graph is acyclic.

        Example:
            >>> scheduler.detect_cycles({"a": {"b"}, "b": {"a"}})
            [['a', 'b', 'a']]
        """
        WHITE, GRAY, BLACK = 0, 1, 2
        colors: dict[str, int] = {node: WHITE for node in graph}
        cycles: list[list[str]] = []

        def dfs(node: str, path: list[str]) -> None:
            colors[node] = GRAY
            path.append(node)

            for neighbor in sorted(graph.get(node, ())):
                if neighbor not in colors:
                    continue  # Dependency outside the graph
                if colors[neighbor] == GRAY:
                    cycle_start = path.index(neighbor)
                    cycles.append(path[cycle_start:] + [neighbor])
                elif colors[neighbor] == WHITE:
                    dfs(neighbor, path)

            path.pop()
            colors[node] = BLACK

        for node in graph:
            if colors[node] == WHITE:
                dfs(node, [])

        return cycles

    # =========================================================================
    # WAVE IDENTIFICATION
    # =========================================================================

    def identify_parallel_waves(
        self,
        tasks: Iterable[Task],
        graph: Mapping[str, Iterable[str]] | None = None,
    ) -> WavePlan:
        """
        Assign eligible tasks to execution waves.

        Only parent tasks that have not passed are scheduled. A dependency
        on an id outside the remaining set counts as satisfied, unless
        strict mode is on and the id is unknown to the whole task list.
        When no remaining task can make progress the loop stops and the
        stuck tasks are reported with any cycles among them.

        Args:
            tasks: Every task in the task set.
            graph: Optional precomputed dependency graph.

        Returns:
            WavePlan with ordered waves and any stuck-task diagnostics.
        """
        all_tasks = list(tasks)
        eligible = [t for t in all_tasks if t.is_parent and not t.is_complete]
        task_map = {t.id: t for t in eligible}
        order = [t.id for t in eligible]

        if graph is None:
            graph = self.build_dependency_graph(eligible)
        deps_of = {tid: set(graph.get(tid, ())) for tid in order}

        known = {t.id for t in all_tasks}
        completed: set[str] = set()
        remaining: set[str] = set(order)
        waves: list[Wave] = []
        wave_id = 1

        logger.info(f"Identifying waves for {len(order)} eligible tasks")

        def satisfied(dep: str) -> bool:
            if dep in completed:
                return True
            if dep in remaining:
                return False
            if self.strict_dependencies and dep not in known:
                return False
            return True

        while remaining:
            ready = [tid for tid in order if tid in remaining and all(map(satisfied, deps_of[tid]))]

            if not ready:
                return self._stuck_plan(waves, order, remaining, deps_of, known)

            isolation = self.calculate_wave_isolation(ready, task_map)
            can_parallel = len(ready) > 1 and isolation >= self.parallel_threshold
            waves.append(
                Wave(
                    wave_id=wave_id,
                    tasks=ready,
                    can_parallel=can_parallel,
                    isolation_score=isolation,
                    rationale=self.generate_rationale(wave_id, ready, can_parallel, isolation),
                    estimated_duration=self.estimate_wave_duration(len(ready), can_parallel),
                )
            )
            logger.debug(
                f"Wave {wave_id}: {len(ready)} tasks, isolation {isolation:.2f}, "
                f"parallel={can_parallel}"
            )

            remaining.difference_update(ready)
            completed.update(ready)
            wave_id += 1

        logger.info(f"Organized {len(order)} tasks into {len(waves)} waves")
        return WavePlan(waves=waves)

    def _stuck_plan(
        self,
        waves: list[Wave],
        order: list[str],
        remaining: set[str],
        deps_of: dict[str, set[str]],
        known: set[str],
    ) -> WavePlan:
        stuck = [tid for tid in order if tid in remaining]
        stuck_graph = {tid: deps_of[tid] & remaining for tid in stuck}
        cycles = self.detect_cycles(stuck_graph)

        diagnostics: list[str] = []
        for cycle in cycles:
            diagnostics.append(f"Circular dependency detected: {' -> '.join(cycle)}")
        for tid in stuck:
            unknown = sorted(d for d in deps_of[tid] if d not in known)
            if unknown:
                diagnostics.append(
                    f"Task {tid} is blocked by unknown tasks: {', '.join(unknown)}"
                )
        diagnostics.append(f"Cannot schedule remaining tasks: {', '.join(stuck)}")

        logger.error(diagnostics[-1])
        return WavePlan(waves=waves, stuck_tasks=stuck, cycles=cycles, diagnostics=diagnostics)

    # =========================================================================
    # ISOLATION SCORING
    # =========================================================================

    def find_shared_file_overlaps(
        self,
        task_ids: Iterable[str],
        task_map: Mapping[str, Task],
    ) -> dict[str, list[str]]:
        """
        Find files claimed by more than one task in a group.

        Args:
            task_ids: Task IDs in the group.
            task_map: Task ID -> Task.

        Returns:
            Dictionary mapping file path -> task IDs that claim it.
        """
        file_owners: dict[str, list[str]] = defaultdict(list)
        for task_id in task_ids:
            task = task_map.get(task_id)
            if task is None:
                continue
            for file_path in dict.fromkeys(task.shared_files):
                file_owners[file_path].append(task_id)

        return {path: owners for path, owners in file_owners.items() if len(owners) > 1}

    def calculate_wave_isolation(
        self,
        task_ids: list[str],
        task_map: Mapping[str, Task],
    ) -> float:
        """
        Calculate the aggregate isolation score of a wave.

        A single task has nothing to conflict with and scores 1.0. Larger
        waves average the declared per-task scores, then lose
        ``overlap_penalty`` for every extra claim on a shared file.

        Args:
            task_ids: Task IDs in the wave.
            task_map: Task ID -> Task.

        Returns:
            Isolation score clamped to [0, 1].
        """
        if len(task_ids) <= 1:
            return 1.0

        scores = [
            task_map[tid].isolation_score(self.default_isolation_score)
            if tid in task_map
            else self.default_isolation_score
            for tid in task_ids
        ]
        average = sum(scores) / len(scores)

        overlaps = self.find_shared_file_overlaps(task_ids, task_map)
        duplicate_claims = sum(len(owners) - 1 for owners in overlaps.values())
        if duplicate_claims:
            logger.debug(f"{duplicate_claims} duplicate file claims: {sorted(overlaps)}")

        score = average - self.overlap_penalty * duplicate_claims
        return round(min(1.0, max(0.0, score)), 4)

    # =========================================================================
    # REPORTING HEURISTICS
    # =========================================================================

    def generate_rationale(
        self,
        wave_id: int,
        task_ids: list[str],
        can_parallel: bool,
        isolation: float,
    ) -> str:
        """Describe a wave's contents and parallel-safety decision."""
        count = len(task_ids)
        noun = "task" if count == 1 else "tasks"
        listing = ", ".join(task_ids)

        if can_parallel:
            mode = f"can run in parallel (isolation {isolation:.2f})"
        elif count > 1:
            mode = (
                f"run sequentially (isolation {isolation:.2f} below "
                f"{self.parallel_threshold:.2f})"
            )
        else:
            mode = "runs alone"

        if wave_id == 1:
            return f"Foundation wave: {count} {noun} with no unmet dependencies ({listing}) {mode}"
        return f"Wave {wave_id}: {count} {noun} unblocked by earlier waves ({listing}) {mode}"

    def estimate_wave_duration(self, task_count: int, can_parallel: bool) -> float:
        """
        Estimate wave duration in minutes.

        Sequential waves cost one baseline per task. Parallel waves grow
        with the square root of their size.
        """
        if task_count <= 0:
            return 0.0
        if can_parallel:
            estimate = self.task_baseline_minutes * self.parallel_reduction * math.sqrt(task_count)
        else:
            estimate = self.task_baseline_minutes * task_count
        return round(estimate, 2)

    # =========================================================================
    # TOP-LEVEL ANALYSIS
    # =========================================================================

    def analyze_for_parallelization(
        self,
        task_set: TaskSet | Mapping[str, Any] | str | Path,
    ) -> ParallelizationAnalysis:
        """
        Analyze a task set for parallel execution.

        Builds the dependency graph from ``blocked_by`` and adds any edges
        from the dependency graph stored in the task set's execution
        strategy. Stored edges never remove a ``blocked_by`` constraint.

        Args:
            task_set: TaskSet, parsed document, or path to a tasks file.

        Returns:
            ParallelizationAnalysis with waves, graph and speedup estimate.

        Raises:
            TaskSetError: If the task set cannot be loaded.
        """
        loaded = load_task_set(task_set)
        eligible = loaded.eligible_tasks()
        eligible_ids = {t.id for t in eligible}

        graph = self.build_dependency_graph(eligible)
        strategy = loaded.execution_strategy
        if strategy is not None and strategy.dependency_graph is not None:
            logger.debug("Merging dependency graph from stored execution strategy")
            stored = strategy.dependency_graph
            graph = {tid: deps | set(stored.get(tid, ())) for tid, deps in graph.items()}

        plan = self.identify_parallel_waves(loaded.tasks, graph)
        unknown = self.find_unknown_dependencies(loaded.tasks, graph)
        if unknown:
            logger.warning(f"Tasks reference unknown dependencies: {unknown}")

        parallel_sizes = [w.size for w in plan.waves if w.can_parallel]
        max_workers = max(parallel_sizes, default=1)

        scheduled = sum(w.size for w in plan.waves)
        sequential = self.estimate_wave_duration(scheduled, can_parallel=False)
        planned = sum(w.estimated_duration for w in plan.waves)
        speedup = round(sequential / planned, 2) if planned > 0 else 1.0

        logger.info(
            f"Analysis: {len(plan.waves)} waves, max {max_workers} workers, "
            f"speedup {speedup}x for {len(eligible_ids)} tasks"
        )

        return ParallelizationAnalysis(
            waves=plan.waves,
            dependency_graph={tid: sorted(deps) for tid, deps in graph.items()},
            max_concurrent_workers=max_workers,
            estimated_speedup=speedup,
            stuck_tasks=plan.stuck_tasks,
            cycles=plan.cycles,
            diagnostics=plan.diagnostics,
            unknown_dependencies=unknown,
        )

    def current_wave(self, task_set: TaskSet, waves: Iterable[Wave]) -> int | None:
        """
        Get the first wave that still has pending or in-progress tasks.

        Args:
            task_set: Loaded task set (supplies task statuses).
            waves: Waves to inspect, in order.

        Returns:
            Wave ID, or None if every wave is finished.
        """
        active = {TaskStatus.PENDING, TaskStatus.IN_PROGRESS}
        for wave in waves:
            for task_id in wave.tasks:
                task = task_set.get_task(task_id)
                if task is not None and task.status in active:
                    return wave.wave_id
        return None


# =============================================================================
# CONVENIENCE FUNCTIONS
# =============================================================================


def identify_parallel_waves(tasks: Iterable[Task]) -> WavePlan:
    """
    Convenience function to compute waves with default settings.

    Example:
        >>> plan = identify_parallel_waves(task_set.tasks)
        >>> len(plan.waves)
        3
    """
    return WaveScheduler().identify_parallel_waves(tasks)


def analyze_for_parallelization(
    task_set: TaskSet | Mapping[str, Any] | str | Path,
) -> ParallelizationAnalysis:
    """Convenience function to analyze a task set with default settings."""
    return WaveScheduler().analyze_for_parallelization(task_set)
