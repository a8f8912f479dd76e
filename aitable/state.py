# aitable/state.py
import copy
import logging
import threading
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Tuple

from aitable import table
from aitable.table import Row

logger = logging.getLogger(__name__)

IDLE = "idle"
READING = "reading"
AWAITING_MODEL = "awaiting_model"
RECONCILED = "reconciled"
ERROR = "error"


@dataclass
class StageError:
    stage: str
    message: str


@dataclass
class TableState:
    """
    The one in-memory table.

    Every write goes through the pure functions in ``aitable.table`` and
    replaces ``rows`` wholesale. Parse attempts are keyed by ``generation``;
    a result whose generation is no longer current is dropped.
    """

    fixed_headers: List[str] = field(default_factory=list)
    rows: List[Row] = field(default_factory=table.default_rows)
    status: str = IDLE
    error: Optional[StageError] = None
    source: Optional[str] = None
    generation: int = 0
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False, compare=False)

    @property
    def headers(self) -> List[str]:
        return table.build_table(self.rows, self.fixed_headers)[0]

    def view(self) -> Dict[str, Any]:
        with self._lock:
            headers, rows = table.build_table(self.rows, self.fixed_headers)
            return {
                "headers": headers,
                "rows": table.with_serials(rows),
                "status": self.status,
                "error": None if self.error is None else asdict(self.error),
                "source": self.source,
                "generation": self.generation,
            }

    def snapshot(self) -> Tuple[List[str], List[Row]]:
        """Deep copy of the reconciled rows for exporters, without display serials."""
        with self._lock:
            headers, rows = table.build_table(self.rows, self.fixed_headers)
            return list(headers), copy.deepcopy(rows)

    # ------------------------------
    # Parse attempts
    # ------------------------------
    def begin(self, source: Optional[str] = None) -> int:
        with self._lock:
            self.generation += 1
            self.status = READING
            self.error = None
            self.source = source
            logger.info("Parse attempt %d started for %s", self.generation, source)
            return self.generation

    def advance(self, token: int, status: str) -> bool:
        with self._lock:
            if token != self.generation:
                return False
            self.status = status
            return True

    def commit(self, token: int, rows: Sequence[Row]) -> bool:
        with self._lock:
            if token != self.generation:
                logger.info("Discarding stale parse result %d (current %d)", token, self.generation)
                return False
            _, reconciled = table.build_table(rows, self.fixed_headers)
            self.rows = reconciled
            self.status = RECONCILED
            self.error = None
            return True

    def fail(self, token: int, stage: str, message: str) -> bool:
        with self._lock:
            if token != self.generation:
                return False
            self.status = ERROR
            self.error = StageError(stage, message)
            return True

    def reset(self) -> None:
        with self._lock:
            self.generation += 1
            self.rows = table.default_rows()
            self.status = IDLE
            self.error = None
            self.source = None

    # ------------------------------
    # Edits
    # ------------------------------
    def set_cell(self, row_index: int, header: str, value: Any) -> None:
        with self._lock:
            self.rows = table.set_cell(self.rows, row_index, header, value)

    def insert_row(self, after_index: int) -> None:
        with self._lock:
            headers, _ = table.build_table(self.rows, self.fixed_headers)
            self.rows = table.insert_row(self.rows, after_index, headers)

    def remove_row(self, index: int) -> None:
        with self._lock:
            self.rows = table.remove_row(self.rows, index)
