from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import Iterable, Iterator, List, Optional, Tuple

import pandas as pd

from .errors import MalformedInputError, MissingJoinKeyError

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
PACKAGE_LOGGER = "focalcn"

_LEVELS = (logging.WARNING, logging.INFO, logging.DEBUG)


def configure_logging(
    verbosity: int = 0, *, logfile: Optional[str | Path] = None
) -> logging.Logger:
    """Show focalcn's pipeline logs on stderr, and optionally in a file.

    Meant for notebooks and workflow steps that call :func:`resolve_focal_calls`
    directly. Only the ``focalcn`` logger is touched, so the host application's
    root logging setup is left alone. Calling it again replaces the handlers from
    the previous call.

    Verbosity 0 logs warnings (excluded rows), 1 adds the per-run summary,
    2 or more adds per-step debug output.
    """
    level = _LEVELS[min(max(verbosity, 0), len(_LEVELS) - 1)]
    pkg_logger = logging.getLogger(PACKAGE_LOGGER)

    for handler in list(pkg_logger.handlers):
        if getattr(handler, "_focalcn_managed", False):
            pkg_logger.removeHandler(handler)
            handler.close()

    handlers: List[logging.Handler] = [logging.StreamHandler(sys.stderr)]
    if logfile is not None:
        logfile = Path(logfile)
        logfile.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(logfile, encoding="utf-8"))

    for handler in handlers:
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        handler._focalcn_managed = True
        pkg_logger.addHandler(handler)
    pkg_logger.setLevel(level)
    return pkg_logger


def require_columns(df: pd.DataFrame, columns: Iterable[str], *, table: str) -> None:
    """Raise MalformedInputError if ``df`` lacks any of ``columns``."""
    missing = [c for c in columns if c not in df.columns]
    if missing:
        raise MalformedInputError(
            f"missing required column(s) {missing}; found {list(df.columns)}",
            table=table,
        )


def iter_sample_groups(
    df: pd.DataFrame, sample_col: str
) -> Iterator[Tuple[str, pd.DataFrame]]:
    """Yield ``(sample_id, rows)`` per sample in sorted sample order."""
    if df.empty:
        return
    for sample_id, group in df.groupby(sample_col, sort=True):
        yield sample_id, group


def empty_frame(columns: Iterable[str]) -> pd.DataFrame:
    return pd.DataFrame({c: pd.Series(dtype="object") for c in columns})


def drop_unjoined(
    df: pd.DataFrame,
    *,
    joined_col: str,
    key_cols: List[str],
    what: str,
    strict: bool = False,
) -> Tuple[pd.DataFrame, int]:
    """Split off rows whose left join on ``key_cols`` found no parent.

    Returns the joined rows and the number excluded. With ``strict`` the
    missing keys raise MissingJoinKeyError instead.
    """
    missing = df[joined_col].isna()
    n_missing = int(missing.sum())
    if n_missing == 0:
        return df, 0

    keys = list(df.loc[missing, key_cols].drop_duplicates().itertuples(index=False, name=None))
    if strict:
        raise MissingJoinKeyError(f"{n_missing} {what} have no matching parent", keys=keys)
    logger.warning(
        "Excluding %d %s with no matching parent (%d distinct keys, e.g. %s)",
        n_missing,
        what,
        len(keys),
        keys[0],
    )
    return df.loc[~missing], n_missing
