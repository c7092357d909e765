"""
Digest cadence: when a subscription is due, which days it covers, and which
alerts it has already received.
"""

from datetime import date, datetime, time, timedelta, timezone
from typing import Iterable, List, Tuple

from food_alerts.models import AggregatedAlert, Frequency

WEEKLY_DIGEST_WEEKDAY = 0  # Monday
MONTHLY_DIGEST_DAY = 1

LOOKBACK_DAYS = {
    Frequency.DAILY: 1,
    Frequency.WEEKLY: 7,
    Frequency.MONTHLY: 30,
}


def is_due(frequency: Frequency, today: date) -> bool:
    """Calendar policy: daily always, weekly on Mondays, monthly on the 1st.

    A missed run is not caught up; the subscription waits for the next
    boundary.
    """
    if frequency == Frequency.DAILY:
        return True
    if frequency == Frequency.WEEKLY:
        return today.weekday() == WEEKLY_DIGEST_WEEKDAY
    if frequency == Frequency.MONTHLY:
        return today.day == MONTHLY_DIGEST_DAY
    return False


def lookback_window(frequency: Frequency, today: date) -> Tuple[datetime, datetime]:
    """Whole UTC days before today: [midnight - N days, midnight today)."""
    end = datetime.combine(today, time.min, tzinfo=timezone.utc)
    start = end - timedelta(days=LOOKBACK_DAYS[frequency])
    return start, end


def exclude_delivered(alerts: Iterable[AggregatedAlert], delivered_fact_ids: Iterable[str]) -> List[AggregatedAlert]:
    """Drop alerts whose facts have all been delivered already.

    An alert with at least one new fact (a hazard added upstream since the
    last digest, say) is offered again.
    """
    delivered = set(delivered_fact_ids)
    return [
        alert for alert in alerts
        if not set(alert.fact_ids).issubset(delivered)
    ]
