from __future__ import annotations

from dataclasses import dataclass

from .validation import check_thresholds

DEFAULT_STATUS_THRESHOLD = 0.9
DEFAULT_UNCALLABLE_THRESHOLD = 0.5


@dataclass(frozen=True)
class FocalConfig:
    """Thresholds and policies for one pipeline run.

    Attributes
    ----------
    status_threshold:
        Fraction of a region that must be lost (or gained) for a loss (or gain)
        call. Must be in (0.5, 1].
    uncallable_threshold:
        A region needs a callable fraction of at least ``1 - uncallable_threshold``
        to receive any call other than uncallable.
    strict_joins:
        If True, rows without a parent arm/cytoband raise MissingJoinKeyError
        instead of being excluded and counted.
    """

    status_threshold: float = DEFAULT_STATUS_THRESHOLD
    uncallable_threshold: float = DEFAULT_UNCALLABLE_THRESHOLD
    strict_joins: bool = False

    def __post_init__(self) -> None:
        check_thresholds(self.status_threshold, self.uncallable_threshold)
