# backend/calculator_session.py

"""
Calculator Session

Owns the per-session state a calculator front end needs around the
stateless MeasurementEngine:
- Bounded calculation history per domain (most recent first, capacity 2)
- Last successful result per domain (what the display currently shows)

History entries are created only after a successful calculation. Errors and
empty input never touch the history or the last result.
"""

import logging
from collections import deque
from datetime import datetime, timezone
from typing import Deque, Dict, Iterator, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from measurement_engine import (
    CalculationResult,
    CalculationStatus,
    MeasurementDomain,
    MeasurementEngine,
)

logger = logging.getLogger(__name__)

HISTORY_CAPACITY = 2


class HistoryEntry(BaseModel):
    """One recorded calculation (equation as typed, compound result)"""
    model_config = ConfigDict(frozen=True)

    equation: str
    result: str
    recorded_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class CalculationHistory:
    """Most-recent-first history; the oldest entry is evicted past capacity."""

    def __init__(self, capacity: int = HISTORY_CAPACITY):
        if capacity <= 0:
            raise ValueError(f"History capacity must be positive. Received: {capacity}")
        self.capacity = capacity
        self._entries: Deque[HistoryEntry] = deque(maxlen=capacity)

    def record(self, equation: str, result: str) -> HistoryEntry:
        entry = HistoryEntry(equation=equation, result=result)
        self._entries.appendleft(entry)
        return entry

    def entries(self) -> List[HistoryEntry]:
        return list(self._entries)

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[HistoryEntry]:
        return iter(self._entries)

    def __getitem__(self, index: int) -> HistoryEntry:
        return self._entries[index]


class CalculatorSession:
    """
    Session state for one calculator user.

    Args:
        engine: MeasurementEngine to delegate to (a fresh one by default)
        history_capacity: Entries kept per domain
    """

    def __init__(self, engine: Optional[MeasurementEngine] = None, history_capacity: int = HISTORY_CAPACITY):
        self.engine = engine or MeasurementEngine()
        self._histories: Dict[MeasurementDomain, CalculationHistory] = {
            domain: CalculationHistory(history_capacity) for domain in MeasurementDomain
        }
        self._last_results: Dict[MeasurementDomain, CalculationResult] = {}

    def calculate(self, domain: Union[str, MeasurementDomain], raw_input: Optional[str]) -> CalculationResult:
        """
        Calculate and, on success, record (raw_input, formatted) in history.

        Raises:
            ValueError: If domain is unknown
        """
        resolved = self.engine.resolve_domain(domain)
        result = self.engine.calculate(resolved, raw_input)

        if result.status == CalculationStatus.SUCCESS:
            self._histories[resolved].record(result.raw_input, result.formatted)
            self._last_results[resolved] = result
            logger.info(f"{resolved.value} calculation recorded: '{result.raw_input}' = {result.formatted}")

        return result

    def calculate_length(self, raw_input: Optional[str]) -> CalculationResult:
        return self.calculate(MeasurementDomain.LENGTH, raw_input)

    def calculate_weight(self, raw_input: Optional[str]) -> CalculationResult:
        return self.calculate(MeasurementDomain.WEIGHT, raw_input)

    def preview(self, domain: Union[str, MeasurementDomain], raw_input: Optional[str]) -> CalculationResult:
        """Calculate without recording history or changing the last result."""
        return self.engine.calculate(domain, raw_input)

    def history(self, domain: Union[str, MeasurementDomain]) -> List[HistoryEntry]:
        return self._histories[self.engine.resolve_domain(domain)].entries()

    def clear_history(self, domain: Union[str, MeasurementDomain]) -> None:
        self._histories[self.engine.resolve_domain(domain)].clear()

    def last_result(self, domain: Union[str, MeasurementDomain]) -> Optional[CalculationResult]:
        return self._last_results.get(self.engine.resolve_domain(domain))
