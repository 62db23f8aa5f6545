"""Next-occurrence arithmetic for recurring obligations.

Calendar units are added with ``dateutil.relativedelta``, which clamps
the day of month when the target month is shorter: Jan 31 + 1 month is
Feb 28 (Feb 29 in leap years), Feb 29 + 1 year is Feb 28. The clamped
day then becomes the new anchor, so a bill due on the 31st drifts to the
28th after February. Callers that need the original day of month back
must keep their own anchor.
"""

from datetime import datetime

from dateutil.relativedelta import relativedelta

from fincore.errors import InputError

ONCE = "once"
DAILY = "daily"
WEEKLY = "weekly"
MONTHLY = "monthly"
QUARTERLY = "quarterly"
YEARLY = "yearly"

TEMPLATE_FREQUENCIES = (DAILY, WEEKLY, MONTHLY, YEARLY)
BILL_FREQUENCIES = (ONCE, MONTHLY, QUARTERLY, YEARLY)

_STEPS = {
    DAILY: lambda n: relativedelta(days=n),
    WEEKLY: lambda n: relativedelta(weeks=n),
    MONTHLY: lambda n: relativedelta(months=n),
    QUARTERLY: lambda n: relativedelta(months=3 * n),
    YEARLY: lambda n: relativedelta(years=n),
}


def next_occurrence(anchor: datetime, frequency: str, interval: int = 1) -> datetime:
    """Return the occurrence ``interval`` periods after ``anchor``.

    ``once`` and unrecognised frequencies return ``anchor`` unchanged,
    meaning "no further occurrence".
    """
    if isinstance(interval, bool) or not isinstance(interval, int) or interval < 1:
        raise InputError(f"interval must be a positive integer, got {interval!r}")
    step = _STEPS.get(frequency)
    if step is None:
        return anchor
    return anchor + step(interval)


def is_repeating(frequency: str) -> bool:
    return frequency in _STEPS
