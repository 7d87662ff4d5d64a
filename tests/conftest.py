"""Pytest configuration and shared fixtures."""

import json
import sys
from collections.abc import Callable, Generator
from pathlib import Path
from typing import Any

import pytest
from loguru import logger

from taskwave.core.config import clear_settings_cache
from taskwave.scheduling.models import Task
from taskwave.verification.cache import MemoryCache
from taskwave.verification.verifier import ExportVerifier

SAMPLE_TS = """\
export interface User {
  id: UserId;
  name: string;
  role: UserRole;
}

export type UserId = string;

export function createUser(name: string): User {
  return { id: crypto.randomUUID(), name, role: UserRole.Member };
}

export class UserService {
  private users: User[] = [];

  add(user: User): void {
    this.users.push(user);
  }
}

export enum UserRole {
  Admin = "admin",
  Member = "member",
}
"""


@pytest.fixture(autouse=True)
def isolated_settings(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Generator:
    """Keep settings and the on-disk cache inside the test's tmp_path."""
    monkeypatch.setenv("TASKWAVE_CACHE_DIR", str(tmp_path / "ast-cache"))
    monkeypatch.delenv("TASKWAVE_STRICT_DEPENDENCIES", raising=False)
    clear_settings_cache()

    yield

    clear_settings_cache()


@pytest.fixture(autouse=True)
def reset_logging() -> Generator:
    """Drop sinks bound to streams captured by an earlier test."""
    yield

    logger.remove()
    logger.add(lambda message: sys.stderr.write(message), level="WARNING")


@pytest.fixture
def sample_ts_source() -> str:
    """Provide a TypeScript module exporting one of each declaration kind."""
    return SAMPLE_TS


@pytest.fixture
def sample_ts_file(tmp_path: Path) -> Path:
    """Write the sample TypeScript module to disk."""
    path = tmp_path / "sample.ts"
    path.write_text(SAMPLE_TS)
    return path


@pytest.fixture
def write_source(tmp_path: Path) -> Callable[[str, str], Path]:
    """Provide a helper that writes a source file under tmp_path."""

    def _write(name: str, content: str) -> Path:
        path = tmp_path / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content)
        return path

    return _write


@pytest.fixture
def memory_cache() -> MemoryCache:
    """Provide an empty in-memory verification cache."""
    return MemoryCache()


@pytest.fixture
def verifier(memory_cache: MemoryCache) -> ExportVerifier:
    """Provide a verifier backed by an in-memory cache."""
    return ExportVerifier(cache=memory_cache, use_cache=True)


@pytest.fixture
def make_task() -> Callable[..., Task]:
    """Provide a factory for parent tasks with dependency metadata."""

    def _make(
        task_id: str,
        blocked_by: list[str] | None = None,
        isolation: float | None = 1.0,
        files: list[str] | None = None,
        status: str = "pending",
        kind: str = "parent",
    ) -> Task:
        return Task.model_validate(
            {
                "id": task_id,
                "type": kind,
                "status": status,
                "dependency_info": {
                    "blocked_by": blocked_by or [],
                    "isolation_score": isolation,
                    "shared_files": files or [],
                },
            }
        )

    return _make


@pytest.fixture
def sample_task_document() -> dict[str, Any]:
    """Provide a tasks.json document with parents, subtasks and a finished task."""
    return {
        "spec": "user-auth",
        "tasks": [
            {
                "id": "1",
                "type": "parent",
                "status": "pass",
                "title": "Project scaffolding",
            },
            {
                "id": "1.1",
                "type": "subtask",
                "parent": "1",
                "status": "pass",
            },
            {
                "id": "2",
                "type": "parent",
                "status": "pending",
                "title": "User model",
                "dependency_info": {
                    "blocked_by": ["1"],
                    "can_parallel_with": ["3"],
                    "isolation_score": 0.95,
                    "shared_files": ["src/models/user.ts"],
                },
            },
            {
                "id": "3",
                "type": "parent",
                "status": "pending",
                "title": "Session store",
                "dependency_info": {
                    "blocked_by": ["1"],
                    "can_parallel_with": ["2"],
                    "isolation_score": 0.9,
                    "shared_files": ["src/session/store.ts"],
                },
            },
            {
                "id": "3.1",
                "type": "subtask",
                "parent": "3",
                "status": "pending",
            },
            {
                "id": "4",
                "type": "parent",
                "status": "pending",
                "title": "Login endpoint",
                "dependency_info": {
                    "blocked_by": ["2", "3"],
                    "isolation_score": 1.0,
                    "shared_files": ["src/routes/login.ts"],
                },
            },
        ],
    }


@pytest.fixture
def tasks_file(tmp_path: Path, sample_task_document: dict[str, Any]) -> Path:
    """Write the sample task document to disk as tasks.json."""
    path = tmp_path / "tasks.json"
    path.write_text(json.dumps(sample_task_document, indent=2))
    return path


# Markers
def pytest_configure(config: pytest.Config) -> None:
    """Configure custom pytest markers."""
    config.addinivalue_line("markers", "unit: mark test as unit test")
    config.addinivalue_line("markers", "integration: mark test as integration test")
