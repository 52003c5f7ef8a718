"""
Decision Log - Append-only justification trail for one identification

Every component records what it decided as a structured record
(stage, message, data). Records are rendered to plain strings only when the
final result is built. Writes go through a lock so concurrent label searches
can share one log; ordering across parallel branches is not guaranteed.
"""
import threading
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List

import structlog

logger = structlog.get_logger()


class DecisionStage(str, Enum):
    """Pipeline stage that produced a record"""
    INPUT = "input"
    EXPANSION = "expansion"
    SEARCH = "search"
    VARIANTS = "variants"
    SCORING = "scoring"
    SELECTION = "selection"
    CATEGORIZATION = "categorization"


@dataclass(frozen=True)
class DecisionRecord:
    stage: DecisionStage
    message: str
    data: Dict[str, Any] = field(default_factory=dict)

    def render(self) -> str:
        return f"{self.stage.value}: {self.message}"


class DecisionLog:
    """Append-only, lock-protected sequence of DecisionRecords."""

    def __init__(self):
        self._records: List[DecisionRecord] = []
        self._lock = threading.Lock()

    def record(self, stage: DecisionStage, message: str, **data: Any) -> DecisionRecord:
        entry = DecisionRecord(stage=stage, message=message, data=data)
        with self._lock:
            self._records.append(entry)
        logger.debug("decision_recorded", stage=stage.value, message=message, **data)
        return entry

    @property
    def records(self) -> List[DecisionRecord]:
        """Snapshot of records in append order"""
        with self._lock:
            return list(self._records)

    def render(self) -> List[str]:
        return [entry.render() for entry in self.records]

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)
