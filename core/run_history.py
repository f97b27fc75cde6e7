"""In-process record of reconciliation runs for status reporting."""
import logging
import threading
import uuid
from datetime import datetime
from typing import List, Optional

from models.transit import ReconcileSummary, RunRecord

logger = logging.getLogger(__name__)


class RunHistory:
    def __init__(self, max_entries: int = 50):
        self._entries: List[RunRecord] = []
        self._max_entries = max_entries
        self._lock = threading.Lock()

    def record(self, summary: ReconcileSummary, trigger: str) -> RunRecord:
        """Store a finished run; oldest entries are dropped past the limit."""
        with self._lock:
            entry = RunRecord(
                run_id=uuid.uuid4().hex[:12],
                trigger=trigger,
                summary=summary,
                timestamp=datetime.now(),
            )
            self._entries.append(entry)
            del self._entries[:-self._max_entries]
            logger.info(f"Recorded run {entry.run_id} ({trigger}): {summary.assigned} assigned")
            return entry

    def last(self) -> Optional[RunRecord]:
        with self._lock:
            return self._entries[-1] if self._entries else None
