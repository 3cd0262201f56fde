from __future__ import annotations

from .config import AppConfig
from .container import Container
from ..core.domain.models import (
    PolicyUpdate,
    PolicyUpdateResult,
    RemediationOutcome,
    RemediationStatus,
    RepositoryAutoFixConfig,
    VulnerabilityAlert,
)


def _create_container(config: AppConfig | None = None) -> Container:
    """Create and initialize a container.

    Args:
        config: Optional config. If None, loads from environment variables.

    Returns:
        Initialized container instance
    """
    container = Container()

    if config is None:
        # Load from environment variables (BaseSettings default behavior)
        config = AppConfig()

    container.config.from_pydantic(config)
    container.init_resources()

    return container


def remediate(
    alert_id: int,
    *,
    force: bool = False,
    retry: bool = False,
    github_token: str | None = None,
    config: AppConfig | None = None,
) -> RemediationOutcome:
    """Attempt to open a fix pull request for one alert.

    Args:
        alert_id: Alert Store id
        force: Skip the eligibility gate
        retry: Allow a previously failed alert to run again
        github_token: GitHub token override (optional, otherwise from config/env)
        config: Optional config for testing. If None, loads from env vars.

    Returns:
        Remediation outcome; failures are reported here, not raised

    Raises:
        ValueError: If no GitHub token is available
    """
    container = _create_container(config)
    try:
        if github_token:
            container.config.github.token.from_value(github_token)
        if not container.config.github.token():
            raise ValueError("GitHub token required via DEPWARDEN_GITHUB__TOKEN")

        uc = container.remediate_uc()
        try:
            return uc.execute(alert_id, force=force, retry=retry)
        finally:
            uc.close()
            container.hosting().close()
    finally:
        container.shutdown_resources()


def resolve_policy(
    repository_id: int,
    package: str | None = None,
    config: AppConfig | None = None,
) -> RepositoryAutoFixConfig:
    """Return the effective auto-fix policy for a repository (and optionally one package)."""
    container = _create_container(config)
    try:
        return container.resolve_policy_uc().execute(repository_id, package)
    finally:
        container.shutdown_resources()


def update_policy(
    repository_id: int,
    update: PolicyUpdate,
    config: AppConfig | None = None,
) -> PolicyUpdateResult:
    """Validate and store a partial policy update.

    Raises:
        ConfigValidationError: If the update breaks a policy invariant; nothing is stored
    """
    container = _create_container(config)
    try:
        return container.update_policy_uc().execute(repository_id, update)
    finally:
        container.shutdown_resources()


def list_alerts(
    repository_id: int | None = None,
    status: RemediationStatus | None = None,
    config: AppConfig | None = None,
) -> list[VulnerabilityAlert]:
    container = _create_container(config)
    try:
        return container.list_alerts_uc().execute(repository_id=repository_id, status=status)
    finally:
        container.shutdown_resources()
