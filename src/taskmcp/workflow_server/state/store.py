"""Snapshot storage for paused workflows.

Snapshots are keyed by workflow (``name`` or ``name:invocation_id``) and are
versioned: every ``put`` bumps the stored version, and a caller that passes
``expected_version`` gets a WorkflowStateError if another writer got there
first.
"""

import copy
import json
import logging
import os
import threading
from pathlib import Path
from typing import Any, Protocol
from urllib.parse import quote, unquote

from ..workflow.context import ExecutionSnapshot
from ..workflow.models import WorkflowStateError

logger = logging.getLogger(__name__)


class StateStore(Protocol):
    """Persistence for paused workflow snapshots."""

    def get(self, key: str) -> ExecutionSnapshot | None:
        ...

    def put(self, key: str, snapshot: ExecutionSnapshot, expected_version: int | None = None) -> int:
        ...

    def delete(self, key: str) -> bool:
        ...

    def list_keys(self) -> list[str]:
        ...


def _check_version(key: str, current: ExecutionSnapshot | None, expected_version: int | None) -> int:
    """Return the version to write, raising on a conflicting concurrent write."""
    current_version = current.version if current is not None else 0
    if expected_version is not None and expected_version != current_version:
        raise WorkflowStateError(
            f"Snapshot for '{key}' was modified concurrently "
            f"(expected version {expected_version}, found {current_version})"
        )
    return current_version + 1


class InMemoryStateStore:
    """Thread-safe in-memory snapshot storage with a fixed capacity.

    A paused snapshot is only removed when its workflow completes or is
    cancelled, so pausing a new workflow while the store is full is refused.
    """

    def __init__(self, max_capacity: int = 50):
        """Initialize the store.

        Args:
            max_capacity: Maximum number of paused workflows to keep
        """
        self.max_capacity = max_capacity
        self._snapshots: dict[str, dict[str, Any]] = {}
        self._lock = threading.RLock()

    def get(self, key: str) -> ExecutionSnapshot | None:
        with self._lock:
            data = self._snapshots.get(key)
            if data is None:
                return None
            return ExecutionSnapshot.from_dict(copy.deepcopy(data))

    def put(self, key: str, snapshot: ExecutionSnapshot, expected_version: int | None = None) -> int:
        with self._lock:
            current = self._snapshots.get(key)
            current_snapshot = ExecutionSnapshot.from_dict(current) if current is not None else None
            version = _check_version(key, current_snapshot, expected_version)

            if current is None and len(self._snapshots) >= self.max_capacity:
                logger.warning(f"State store full, refusing to pause '{key}'")
                raise WorkflowStateError(
                    f"Cannot pause '{key}': {self.max_capacity} workflows are already paused; "
                    "complete or cancel one first"
                )

            data = copy.deepcopy(snapshot.to_dict())
            data["version"] = version
            self._snapshots[key] = data
            return version

    def delete(self, key: str) -> bool:
        with self._lock:
            return self._snapshots.pop(key, None) is not None

    def list_keys(self) -> list[str]:
        with self._lock:
            return list(self._snapshots.keys())

    def get_stats(self) -> dict[str, Any]:
        with self._lock:
            return {
                "backend": "memory",
                "paused_workflows": len(self._snapshots),
                "max_capacity": self.max_capacity,
            }


class FileStateStore:
    """Snapshot storage as one JSON file per key.

    Writes go to a temporary file that is then renamed over the target, so a
    reader never sees a half-written snapshot.
    """

    SUFFIX = ".json"

    def __init__(self, directory: str | Path):
        self.directory = Path(directory)
        self.directory.mkdir(parents=True, exist_ok=True)
        self._lock = threading.RLock()

    def _path_for(self, key: str) -> Path:
        return self.directory / f"{quote(key, safe='')}{self.SUFFIX}"

    def _read(self, key: str) -> ExecutionSnapshot | None:
        path = self._path_for(key)
        if not path.exists():
            return None
        try:
            with open(path, encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise WorkflowStateError(f"Failed to read snapshot for '{key}': {e}") from e
        return ExecutionSnapshot.from_dict(data)

    def get(self, key: str) -> ExecutionSnapshot | None:
        with self._lock:
            return self._read(key)

    def put(self, key: str, snapshot: ExecutionSnapshot, expected_version: int | None = None) -> int:
        with self._lock:
            version = _check_version(key, self._read(key), expected_version)

            data = snapshot.to_dict()
            data["version"] = version
            path = self._path_for(key)
            temp_path = path.with_suffix(path.suffix + ".tmp")
            try:
                with open(temp_path, "w", encoding="utf-8") as f:
                    json.dump(data, f, indent=2, default=str)
                os.replace(temp_path, path)
            except (OSError, TypeError, ValueError) as e:
                temp_path.unlink(missing_ok=True)
                raise WorkflowStateError(f"Failed to write snapshot for '{key}': {e}") from e

            logger.debug(f"Saved snapshot for '{key}' (version {version}) to {path}")
            return version

    def delete(self, key: str) -> bool:
        with self._lock:
            path = self._path_for(key)
            if not path.exists():
                return False
            path.unlink()
            return True

    def list_keys(self) -> list[str]:
        with self._lock:
            return sorted(unquote(path.name[: -len(self.SUFFIX)]) for path in self.directory.glob(f"*{self.SUFFIX}"))

    def get_stats(self) -> dict[str, Any]:
        return {
            "backend": "file",
            "paused_workflows": len(self.list_keys()),
            "directory": str(self.directory),
        }


def create_state_store(config: Any) -> InMemoryStateStore | FileStateStore:
    """Build the store selected by ``config.state_store``."""
    if config.state_store == "file":
        logger.info(f"Using file state store at {config.state_directory}")
        return FileStateStore(config.state_directory)
    return InMemoryStateStore(max_capacity=config.max_paused_workflows)
