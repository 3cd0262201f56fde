from __future__ import annotations

from typing import Optional

from ..domain.models import RemediationStatus, VulnerabilityAlert
from ..ports import AlertStorePort


class ListAlertsUseCase:
    def __init__(self, *, alert_store: AlertStorePort) -> None:
        self._alert_store = alert_store

    def execute(
        self,
        *,
        repository_id: Optional[int] = None,
        status: Optional[RemediationStatus] = None,
    ) -> list[VulnerabilityAlert]:
        """List alerts, optionally narrowed to one repository and/or one status."""
        if repository_id is not None:
            alerts = self._alert_store.list_by_repository(repository_id)
        else:
            alerts = self._alert_store.list_all()
        if status is not None:
            alerts = [a for a in alerts if a.remediation_status is status]
        return sorted(alerts, key=lambda a: a.id)
