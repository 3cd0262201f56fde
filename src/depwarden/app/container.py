from __future__ import annotations

import operator

from dependency_injector import containers, providers

from .config import AppConfig
from ..core.services import (
    AlertStateTracker,
    FixPlanner,
    PolicyResolver,
    RemediationExecutor,
    ResilienceLayer,
    RetryConfig,
)
from ..core.usecases.alerts import ListAlertsUseCase
from ..core.usecases.policy import (
    BulkUpdatePolicyUseCase,
    CreatePackageRuleUseCase,
    ResolvePolicyUseCase,
    UpdatePolicyUseCase,
    ValidatePolicyUseCase,
)
from ..core.usecases.remediate import RemediateUseCase
from ..infra.alert_store import JsonAlertStore
from ..infra.config_store import JsonConfigStore
from ..infra.github_client import GitHubClient
from ..infra.logging import RemediationLogger
from ..infra.notifier import LoggingNotifier


class Container(containers.DeclarativeContainer):
    """DI container with Pydantic BaseSettings support."""

    config = providers.Configuration(pydantic_settings=[AppConfig()])

    # Logger (Resource: manages lifecycle with init/shutdown)
    logger = providers.Resource(
        RemediationLogger,
        logs_dir=config.directories.logs_dir,
        logger_name=config.logging.logger_name,
        console_output=config.logging.console_output,
        level=config.logging.level,
    )

    # Stores
    alert_store = providers.Singleton(
        JsonAlertStore,
        path=providers.Callable(operator.truediv, config.directories.data_dir, "alerts.json"),
    )

    config_store = providers.Singleton(
        JsonConfigStore,
        path=providers.Callable(operator.truediv, config.directories.data_dir, "autofix_rules.json"),
    )

    # Hosting API
    hosting = providers.Singleton(
        GitHubClient,
        token=config.github.token,
        api_url=config.github.api_url,
        timeout=config.github.request_timeout,
    )

    notifier = providers.Singleton(LoggingNotifier, logger=logger)

    # Domain services; breaker and dedup state must be shared, hence singletons
    resilience = providers.Singleton(
        ResilienceLayer,
        retry=providers.Factory(
            RetryConfig,
            max_attempts=config.resilience.max_attempts,
            base_delay=config.resilience.base_delay,
            max_delay=config.resilience.max_delay,
        ),
        failure_threshold=config.resilience.failure_threshold,
        recovery_timeout=config.resilience.recovery_timeout,
        logger=logger,
    )

    policy = providers.Singleton(
        PolicyResolver,
        config_store=config_store,
        logger=logger,
    )

    planner = providers.Singleton(
        FixPlanner,
        logger=logger,
        manifest_path=config.remediation.manifest_path,
        lockfile_path=config.remediation.lockfile_path,
    )

    tracker = providers.Singleton(
        AlertStateTracker,
        alert_store=alert_store,
        logger=logger,
    )

    executor = providers.Singleton(
        RemediationExecutor,
        hosting=hosting,
        resilience=resilience,
        planner=planner,
        tracker=tracker,
        logger=logger,
    )

    # Use cases
    remediate_uc = providers.Singleton(
        RemediateUseCase,
        executor=executor,
        policy=policy,
        tracker=tracker,
        resilience=resilience,
        notifier=notifier,
        logger=logger,
        max_workers=config.remediation.max_workers,
    )

    list_alerts_uc = providers.Factory(ListAlertsUseCase, alert_store=alert_store)

    resolve_policy_uc = providers.Factory(ResolvePolicyUseCase, policy=policy)
    update_policy_uc = providers.Factory(UpdatePolicyUseCase, policy=policy)
    bulk_update_policy_uc = providers.Factory(BulkUpdatePolicyUseCase, policy=policy)
    validate_policy_uc = providers.Factory(ValidatePolicyUseCase, policy=policy)
    create_package_rule_uc = providers.Factory(CreatePackageRuleUseCase, policy=policy)
