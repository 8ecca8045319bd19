from __future__ import annotations

import numpy as np
import numpy.typing as npt

from .models import GAIN, LOSS, NEUTRAL, UNCALLABLE, UNSTABLE


def classify(
    loss_fraction: float,
    gain_fraction: float,
    callable_fraction: float,
    status_threshold: float,
    uncallable_threshold: float,
) -> str:
    """Return the dominant status of one region.

    Rules are evaluated in order and the first match wins:

    1. callable_fraction < 1 - uncallable_threshold -> uncallable
    2. loss_fraction > status_threshold -> loss
    3. gain_fraction > status_threshold -> gain
    4. loss_fraction + gain_fraction > status_threshold -> unstable
    5. otherwise -> neutral

    A region with too little callable span cannot support a directional call,
    so rule 1 is checked before any fraction.
    """
    if callable_fraction < 1.0 - uncallable_threshold:
        return UNCALLABLE
    if loss_fraction > status_threshold:
        return LOSS
    if gain_fraction > status_threshold:
        return GAIN
    if loss_fraction + gain_fraction > status_threshold:
        return UNSTABLE
    return NEUTRAL


def classify_arrays(
    loss_fraction: npt.ArrayLike,
    gain_fraction: npt.ArrayLike,
    callable_fraction: npt.ArrayLike,
    status_threshold: float,
    uncallable_threshold: float,
) -> np.ndarray:
    """Vectorized :func:`classify`; returns an object array of statuses."""
    loss = np.asarray(loss_fraction, dtype=float)
    gain = np.asarray(gain_fraction, dtype=float)
    callable_ = np.asarray(callable_fraction, dtype=float)

    # np.select picks the first true condition, same order as classify().
    conditions = [
        callable_ < 1.0 - uncallable_threshold,
        loss > status_threshold,
        gain > status_threshold,
        loss + gain > status_threshold,
    ]
    choices = [UNCALLABLE, LOSS, GAIN, UNSTABLE]
    return np.select(conditions, choices, default=NEUTRAL).astype(object)
