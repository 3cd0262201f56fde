from __future__ import annotations

from ..core.domain.models import RemediationEvent
from ..core.ports import LoggerPort


class LoggingNotifier:
    """NotifierPort that records each event as a `notification` log entry.

    Delivery is fire-and-forget: a failure to emit is logged and swallowed.
    """

    def __init__(self, *, logger: LoggerPort) -> None:
        self._logger = logger

    def notify(self, event: RemediationEvent) -> None:
        try:
            self._logger.info(
                "notification",
                alert_id=event.alert_id,
                outcome=event.outcome,
                pr_url=event.pr_url,
                error=event.error,
            )
        except Exception:
            self._logger.exception("notification_delivery_failed", alert_id=event.alert_id)
