from __future__ import annotations

from typing import Hashable, Optional, Sequence

_MAX_REPORTED = 5


def _preview(items: Sequence[Hashable]) -> str:
    shown = ", ".join(repr(x) for x in list(items)[:_MAX_REPORTED])
    if len(items) > _MAX_REPORTED:
        shown += f", ... ({len(items)} total)"
    return shown


class FocalInputError(ValueError):
    """Base class for invalid pipeline inputs or configuration."""


class ThresholdError(FocalInputError):
    """Raised when classification thresholds are misconfigured."""


class MalformedInputError(FocalInputError):
    """Raised when input rows violate the table contract.

    The whole input is rejected; ``rows`` holds the offending index labels.
    """

    def __init__(
        self,
        message: str,
        *,
        table: str,
        rows: Optional[Sequence[Hashable]] = None,
    ) -> None:
        self.table = table
        self.rows = list(rows) if rows is not None else []
        if self.rows:
            message = f"{message} (rows: {_preview(self.rows)})"
        super().__init__(f"{table}: {message}")


class MissingJoinKeyError(FocalInputError):
    """Raised in strict mode when rows have no parent region to compare against."""

    def __init__(self, message: str, *, keys: Sequence[Hashable]) -> None:
        self.keys = list(keys)
        super().__init__(f"{message} (keys: {_preview(self.keys)})")
