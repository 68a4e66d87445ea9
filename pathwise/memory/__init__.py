"""Memory scheduler: FSRS-style retention and review timing."""

from pathwise.memory.fsrs import (
    MS_PER_DAY,
    FSRSParams,
    FSRSScheduler,
    MemoryState,
    MemoryStateKind,
    MemoryStatistics,
    Rating,
    calculate_next_interval,
    calculate_retention,
    days_between,
    validate_fsrs_params,
)

__all__ = [
    "MS_PER_DAY",
    "FSRSParams",
    "FSRSScheduler",
    "MemoryState",
    "MemoryStateKind",
    "MemoryStatistics",
    "Rating",
    "calculate_next_interval",
    "calculate_retention",
    "days_between",
    "validate_fsrs_params",
]
