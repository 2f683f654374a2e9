"""
Operation Registry - one RecordedOperation per operation id for a run.

merge() inserts new ids and appends examples to known ids, after
checking that method and path template agree with the first recording.
Conflict check and append happen under one lock, so parallel test workers
sharing a registry cannot interleave them.
"""

import logging
import threading
from typing import Dict, Iterator, List, Optional

from ..contracts.errors import ConflictingOperationError
from .exchange import RecordedOperation


logger = logging.getLogger('contract_recorder.registry')


class OperationRegistry:
    """Thread-safe map of operation id -> RecordedOperation."""

    def __init__(self):
        self._operations: Dict[str, RecordedOperation] = {}
        self._lock = threading.Lock()

    def merge(self, op: RecordedOperation) -> RecordedOperation:
        """
        Merge a freshly normalized operation into the registry.

        Returns:
            A copy of the merged RecordedOperation for op.operation_id;
            later merges do not show up in it

        Raises:
            ConflictingOperationError: If method or path template differ
                from the first recording under the same id
        """
        with self._lock:
            existing = self._operations.get(op.operation_id)
            if existing is None:
                self._operations[op.operation_id] = op.copy()
                logger.debug(f"registered {op.operation_id}: {op.method} {op.path_template}")
                return op.copy()

            if existing.method != op.method or existing.path_template != op.path_template:
                raise ConflictingOperationError(
                    message=(
                        f"Operation '{op.operation_id}' recorded as "
                        f"{existing.method} {existing.path_template} and "
                        f"{op.method} {op.path_template}"
                    ),
                    details={
                        "recorded": {"method": existing.method, "path": existing.path_template},
                        "conflicting": {"method": op.method, "path": op.path_template},
                    },
                    operation_id=op.operation_id,
                )

            if op.contract != existing.contract:
                # First declaration wins; later drift is reported only
                logger.warning(
                    f"Operation '{op.operation_id}' merged with a different contract; "
                    f"keeping the first declaration",
                    extra={"event": "contract_drift", "operation_id": op.operation_id},
                )

            existing.examples.extend(op.examples)
            return existing.copy()

    def get(self, operation_id: str) -> Optional[RecordedOperation]:
        """Copy of the recorded operation, or None for an unknown id."""
        with self._lock:
            op = self._operations.get(operation_id)
            return op.copy() if op else None

    def operation_ids(self) -> List[str]:
        """Registered ids in lexicographic order."""
        with self._lock:
            return sorted(self._operations)

    def example_count(self, operation_id: str) -> int:
        with self._lock:
            op = self._operations.get(operation_id)
            return len(op.examples) if op else 0

    def snapshot(self) -> List[RecordedOperation]:
        """Point-in-time copies of every operation, sorted by id."""
        with self._lock:
            return [self._operations[key].copy() for key in sorted(self._operations)]

    def clear(self) -> None:
        """Flush everything (end of run)."""
        with self._lock:
            self._operations.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._operations)

    def __contains__(self, operation_id: object) -> bool:
        with self._lock:
            return operation_id in self._operations

    def __iter__(self) -> Iterator[RecordedOperation]:
        return iter(self.snapshot())
