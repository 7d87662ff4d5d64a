"""Task-set loading.

Reads ``tasks.json`` documents from disk (or accepts already-parsed data)
and validates them into :class:`TaskSet` models at the boundary.
"""

import json
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from loguru import logger
from pydantic import ValidationError

from taskwave.core.exceptions import TaskSetError
from taskwave.scheduling.models import ExecutionStrategy, TaskSet

TASKS_FILENAME = "tasks.json"
SPECS_DIR = Path(".agent-os") / "specs"


def find_tasks_file(root: str | Path, spec_name: str | None = None) -> Path | None:
    """
    Locate a ``tasks.json`` under a project's spec directory.

    Lookup order: ``<root>/.agent-os/specs/<spec>/tasks.json``, then a
    date-prefixed ``*-<spec>`` directory, then the first ``tasks.json``
    found anywhere below the specs directory.

    Args:
        root: Project root directory.
        spec_name: Optional spec directory name.

    Returns:
        Path to the tasks file, or None if nothing was found.
    """
    base = Path(root) / SPECS_DIR
    if not base.is_dir():
        return None

    if spec_name:
        direct = base / spec_name / TASKS_FILENAME
        if direct.is_file():
            return direct
        for match in sorted(base.glob(f"*-{spec_name}")):
            candidate = match / TASKS_FILENAME
            if match.is_dir() and candidate.is_file():
                return candidate

    for candidate in sorted(base.rglob(TASKS_FILENAME)):
        if candidate.is_file():
            return candidate
    return None


def _resolve_path(path: Path) -> Path:
    if path.is_dir():
        direct = path / TASKS_FILENAME
        if direct.is_file():
            return direct
        found = find_tasks_file(path)
        if found is None:
            raise TaskSetError(f"No {TASKS_FILENAME} found under {path}")
        return found
    if not path.exists():
        raise TaskSetError(f"Task set not found: {path}")
    return path


def load_task_set(source: TaskSet | Mapping[str, Any] | list | str | Path) -> TaskSet:
    """
    Load and validate a task set.

    Args:
        source: A TaskSet, a parsed document or bare task list, a path
            to a ``tasks.json`` (or a directory containing one), or raw
            JSON text.

    Returns:
        Validated TaskSet.

    Raises:
        TaskSetError: If the source is missing, unreadable or malformed.

    Example:
        >>> task_set = load_task_set(".agent-os/specs/auth/tasks.json")
        >>> len(task_set.tasks)
        12
    """
    if source is None:
        raise TaskSetError("No task set provided")

    if isinstance(source, TaskSet):
        return source

    if isinstance(source, Mapping):
        return _validate(dict(source), origin="<mapping>")

    if isinstance(source, list):
        return _validate(source, origin="<list>")

    if isinstance(source, str) and source.lstrip().startswith(("{", "[")):
        return _validate(_decode(source, origin="<text>"), origin="<text>")

    path = _resolve_path(Path(source))
    logger.debug(f"Loading task set from {path}")

    try:
        text = path.read_text(encoding="utf-8")
    except OSError as e:
        raise TaskSetError(f"Cannot read task set {path}: {e}") from e

    return _validate(_decode(text, origin=str(path)), origin=str(path))


def _decode(text: str, origin: str) -> Any:
    try:
        return json.loads(text)
    except json.JSONDecodeError as e:
        raise TaskSetError(f"Invalid JSON in task set {origin}: {e}") from e


def _validate(data: Any, origin: str) -> TaskSet:
    # A bare array of task records is accepted as a task set
    if isinstance(data, list):
        data = {"tasks": data}

    if not isinstance(data, dict):
        raise TaskSetError(f"Task set {origin} must be a JSON object, got {type(data).__name__}")
    if "tasks" not in data:
        raise TaskSetError(f"Task set {origin} has no 'tasks' array")

    try:
        task_set = TaskSet.model_validate(data)
    except ValidationError as e:
        raise TaskSetError(f"Malformed task set {origin}: {e}") from e

    ids = [t.id for t in task_set.tasks]
    duplicates = sorted({i for i in ids if ids.count(i) > 1})
    if duplicates:
        raise TaskSetError(f"Task set {origin} has duplicate task ids: {', '.join(duplicates)}")

    logger.debug(f"Loaded {len(task_set.tasks)} tasks from {origin}")
    return task_set


def load_execution_strategy(task_set: TaskSet) -> ExecutionStrategy | None:
    """
    Get the precomputed execution strategy if it is structurally valid.

    A strategy is valid when it has at least one wave, wave IDs run 1..N in
    order and every wave references only tasks present in the task set.

    Args:
        task_set: Loaded task set.

    Returns:
        The stored ExecutionStrategy, or None if absent or invalid.
    """
    strategy = task_set.execution_strategy
    if strategy is None or not strategy.waves:
        return None

    known = {t.id for t in task_set.tasks}
    for expected_id, wave in enumerate(strategy.waves, start=1):
        if wave.wave_id != expected_id:
            logger.warning(
                f"Ignoring stored execution strategy: wave {wave.wave_id} "
                f"found where wave {expected_id} was expected"
            )
            return None
        unknown = [tid for tid in wave.tasks if tid not in known]
        if unknown:
            logger.warning(
                f"Ignoring stored execution strategy: wave {wave.wave_id} "
                f"references unknown tasks {unknown}"
            )
            return None

    return strategy
