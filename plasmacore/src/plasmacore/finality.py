"""
Confirmation based finality for deposits and exits.

Status is never stored: it is recomputed from the current root chain
height every time a record is read.
"""

from __future__ import annotations

from plasmacore.models import TxStatus


def pending_percentage(current_block: int, event_block: int, threshold: int) -> int:
    """
    Percentage of the finality threshold reached, rounded half away from zero.

    Not clamped: a record well past its threshold reports more than 100.
    """
    if threshold <= 0:
        raise ValueError("threshold must be positive")
    delta = current_block - event_block
    magnitude = (200 * abs(delta) + threshold) // (2 * threshold)
    return magnitude if delta >= 0 else -magnitude


def finality_status(current_block: int, event_block: int, threshold: int) -> TxStatus:
    if current_block - event_block >= threshold:
        return TxStatus.CONFIRMED
    return TxStatus.PENDING
