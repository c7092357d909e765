"""
Digest job: for each active subscription that is due today, collect the
alerts in its lookback window, apply its filters, drop what it has already
received, and hand the rest to a dispatcher.

The dispatcher is whatever actually sends the email. It takes a
DigestRequest and returns True once the message is accepted.
"""

from datetime import date, datetime, timezone
from typing import Callable, List, Optional

from food_alerts import database
from food_alerts.aggregator import aggregate
from food_alerts.filters import criteria_from_rules, matches
from food_alerts.models import (
    AggregatedAlert,
    DeliveryStatus,
    DigestKind,
    DigestOutcome,
    DigestRequest,
    DigestRunResult,
    Frequency,
    Subscription,
)
from food_alerts.normalizer import format_country_label
from food_alerts.schedule import exclude_delivered, is_due, lookback_window
from util.logging_util import log_run_summary, setup_logger

logger = setup_logger(__name__)

Dispatcher = Callable[[DigestRequest], bool]

STATUS_SENT = "sent"
STATUS_ALL_CLEAR = "all_clear"
STATUS_FAILED = "failed"
STATUS_NOT_DUE = "not_due"
STATUS_NO_ALERTS = "no_alerts"
STATUS_NO_CONTACT = "no_contact"

SKIPPED_STATUSES = {STATUS_NOT_DUE, STATUS_NO_ALERTS, STATUS_NO_CONTACT}


def collect_alerts(subscription: Subscription, today: date) -> List[AggregatedAlert]:
    """Alerts in the subscription's window that pass its filters and are new to it."""
    criteria = criteria_from_rules(database.get_filter_rules(subscription.id))
    start, end = lookback_window(subscription.frequency, today)

    alerts = aggregate(database.get_facts_between(start, end))
    alerts = [alert for alert in alerts if matches(alert, criteria)]
    return exclude_delivered(alerts, database.get_delivered_fact_ids(subscription.id))


def _send_all_clear(request: DigestRequest, dispatch: Dispatcher) -> DigestOutcome:
    # No Delivery row: there are no facts to record against it
    if dispatch(request):
        return DigestOutcome(request.subscription_id, STATUS_ALL_CLEAR)
    return DigestOutcome(request.subscription_id, STATUS_FAILED, error="All-clear notice was not accepted")


def _send_digest(request: DigestRequest, dispatch: Dispatcher) -> DigestOutcome:
    fact_ids = [fact_id for alert in request.alerts for fact_id in alert.fact_ids]

    delivery_id = database.create_delivery(request.subscription_id, DigestKind.DIGEST.value, fact_ids)

    try:
        accepted = dispatch(request)
    except Exception as e:
        database.set_delivery_status(delivery_id, DeliveryStatus.FAILED)
        logger.error(f"Dispatch failed for subscription {request.subscription_id}: {e}")
        return DigestOutcome(request.subscription_id, STATUS_FAILED, len(request.alerts), delivery_id, str(e))

    if not accepted:
        database.set_delivery_status(delivery_id, DeliveryStatus.FAILED)
        return DigestOutcome(
            request.subscription_id, STATUS_FAILED, len(request.alerts), delivery_id,
            "Digest was not accepted by the dispatcher",
        )

    database.set_delivery_status(delivery_id, DeliveryStatus.SENT)
    return DigestOutcome(request.subscription_id, STATUS_SENT, len(request.alerts), delivery_id)


def process_subscription(subscription: Subscription, dispatch: Dispatcher, today: date) -> DigestOutcome:
    if not is_due(subscription.frequency, today):
        return DigestOutcome(subscription.id, STATUS_NOT_DUE)

    subscriber = database.get_subscriber(subscription.user_id)
    if subscriber is None or not subscriber.email:
        logger.warning(f"Subscription {subscription.id} has no contact email, skipping")
        return DigestOutcome(subscription.id, STATUS_NO_CONTACT)

    alerts = collect_alerts(subscription, today)
    window_start, window_end = lookback_window(subscription.frequency, today)

    request = DigestRequest(
        subscription_id=subscription.id,
        user_id=subscription.user_id,
        email=subscriber.email,
        frequency=subscription.frequency,
        kind=DigestKind.DIGEST if alerts else DigestKind.ALL_CLEAR,
        alerts=alerts,
        window_start=window_start,
        window_end=window_end,
    )

    if alerts:
        return _send_digest(request, dispatch)
    if subscription.frequency == Frequency.DAILY:
        return _send_all_clear(request, dispatch)
    return DigestOutcome(subscription.id, STATUS_NO_ALERTS)


def run_digest(dispatch: Dispatcher, today: Optional[date] = None) -> DigestRunResult:
    """Run the digest job for every active subscription.

    One subscription failing never stops the others; the failure is logged
    and reported in the run result.
    """
    today = today or datetime.now(timezone.utc).date()
    result = DigestRunResult()

    for subscription in database.get_active_subscriptions():
        result.processed += 1
        try:
            outcome = process_subscription(subscription, dispatch, today)
        except Exception as e:
            logger.error(f"Digest failed for subscription {subscription.id}: {e}")
            outcome = DigestOutcome(subscription.id, STATUS_FAILED, error=str(e))

        result.outcomes.append(outcome)
        if outcome.status == STATUS_SENT:
            result.sent += 1
        elif outcome.status == STATUS_ALL_CLEAR:
            result.all_clear += 1
        elif outcome.status in SKIPPED_STATUSES:
            result.skipped += 1
        else:
            result.failed += 1

    log_run_summary(
        logger,
        "digest",
        {
            "processed": result.processed,
            "sent": result.sent,
            "all_clear": result.all_clear,
            "skipped": result.skipped,
            "failed": result.failed,
        },
    )
    return result


def render_alert_line(alert: AggregatedAlert) -> str:
    date_str = alert.alert_date.isoformat() if alert.alert_date else "undated"
    hazards = ", ".join(alert.hazards)
    if alert.hazard_categories:
        hazards = f"{hazards} [{'/'.join(alert.hazard_categories)}]"
    countries = format_country_label(alert.countries)
    return (
        f"[{alert.risk_level.label}] {hazards} in {alert.product_text} "
        f"({alert.product_category}) from {countries}, {date_str}"
    )


def log_dispatcher(request: DigestRequest) -> bool:
    """Dispatcher that writes the digest to the log instead of sending it."""
    period = f"{request.window_start.date().isoformat()} to {request.window_end.date().isoformat()}"
    if request.kind == DigestKind.ALL_CLEAR:
        logger.info(f"All clear for {request.email}: no new alerts {period}")
        return True

    logger.info(f"{request.frequency.value.capitalize()} digest for {request.email}: "
                f"{len(request.alerts)} alerts {period}")
    for alert in request.alerts:
        logger.info(f"  {render_alert_line(alert)}")
    return True
