"""
Memory-model adapter.

Wraps the FSRS scheduler (fsrs-rs-python) behind a small interface that
returns one candidate (memory state, interval) per rating. The adapter never
raises: any scheduler failure is logged and replaced by a fixed fallback table.
"""
import logging
import math
from dataclasses import dataclass
from typing import List, Optional

from fsrs_rs_python import FSRS, DEFAULT_PARAMETERS, MemoryState as FSRSMemoryState

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MemoryState:
    stability: float
    difficulty: float


@dataclass(frozen=True)
class ItemState:
    memory: MemoryState
    interval: int  # Days


@dataclass(frozen=True)
class NextStates:
    again: ItemState
    hard: ItemState
    good: ItemState
    easy: ItemState

    def for_rating(self, rating: int) -> ItemState:
        """Candidate matching a 1-4 rating."""
        return {1: self.again, 2: self.hard, 3: self.good, 4: self.easy}[rating]


DEFAULT_MEMORY = MemoryState(stability=1.0, difficulty=5.0)

FALLBACK_STATES = NextStates(
    again=ItemState(memory=DEFAULT_MEMORY, interval=1),
    hard=ItemState(memory=DEFAULT_MEMORY, interval=3),
    good=ItemState(memory=DEFAULT_MEMORY, interval=7),
    easy=ItemState(memory=DEFAULT_MEMORY, interval=14),
)

# Initial stability per rating for a card without memory state
BOOTSTRAP_STABILITY = {1: 0.4, 2: 1.2, 3: 3.2, 4: 15.7}


def bootstrap_memory_state(rating: int) -> MemoryState:
    """
    First memory state of a card that has never been reviewed.

    Args:
        rating: Rating of the first review (1-4)

    Returns:
        Initial stability and difficulty
    """
    difficulty = 7.1949 - math.exp(0.5345 * (rating - 1)) + 1.0
    difficulty = max(1.0, min(10.0, difficulty))
    return MemoryState(stability=BOOTSTRAP_STABILITY[rating], difficulty=difficulty)


class MemoryModel:
    """Scheduler interface consumed by the review engine."""

    def next_states(
        self,
        current: Optional[MemoryState],
        desired_retention: float,
        elapsed_days: int
    ) -> NextStates:
        raise NotImplementedError


class FSRSMemoryModel(MemoryModel):
    """FSRS scheduler with the fixed fallback table on failure."""

    def __init__(self, parameters: Optional[List[float]] = None):
        self.parameters = list(parameters) if parameters else list(DEFAULT_PARAMETERS)
        self._fsrs = None

    def _scheduler(self) -> FSRS:
        if self._fsrs is None:
            self._fsrs = FSRS(parameters=self.parameters)
        return self._fsrs

    def next_states(
        self,
        current: Optional[MemoryState],
        desired_retention: float,
        elapsed_days: int
    ) -> NextStates:
        """
        Compute the four candidate next states.

        Args:
            current: Current memory state, or None for a card never reviewed
            desired_retention: Target recall probability in (0, 1)
            elapsed_days: Whole days since the last review

        Returns:
            Candidates for again/hard/good/easy with non-decreasing intervals
        """
        try:
            memory = None
            if current is not None:
                memory = FSRSMemoryState(
                    stability=float(current.stability),
                    difficulty=float(current.difficulty)
                )
            raw = self._scheduler().next_states(memory, float(desired_retention), int(elapsed_days))

            candidates = []
            floor = 1
            for item in (raw.again, raw.hard, raw.good, raw.easy):
                stability = float(item.memory.stability)
                difficulty = float(item.memory.difficulty)
                if not (math.isfinite(stability) and math.isfinite(difficulty) and math.isfinite(item.interval)):
                    raise ValueError(f"Non-finite scheduler output: {item}")
                interval = max(floor, int(round(item.interval)))
                floor = interval
                candidates.append(ItemState(
                    memory=MemoryState(stability=stability, difficulty=difficulty),
                    interval=interval
                ))
            return NextStates(*candidates)
        except Exception as e:
            logger.warning(f"Memory model failed, using fallback intervals: {e}")
            return FALLBACK_STATES
