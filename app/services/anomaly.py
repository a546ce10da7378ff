"""Anomaly detection for submitted readings."""

from decimal import Decimal

from app.core.config import settings


def compute_percent_change(
    current: Decimal | None,
    previous: Decimal | None,
) -> Decimal | None:
    """Percentage change from previous to current.

    Only defined when previous is a finite positive number and current is
    finite; otherwise returns None.
    """
    if current is None or previous is None:
        return None
    if not current.is_finite() or not previous.is_finite():
        return None
    if previous <= 0:
        return None
    return (current - previous) / previous * Decimal("100")


def is_anomalous(
    delta_percent: Decimal | None,
    threshold_percent: Decimal | float | None = None,
) -> bool:
    """Flag a swing of at least the threshold in either direction."""
    if delta_percent is None:
        return False
    if threshold_percent is None:
        threshold_percent = settings.ANOMALY_THRESHOLD_PERCENT
    return abs(delta_percent) >= Decimal(str(threshold_percent))
