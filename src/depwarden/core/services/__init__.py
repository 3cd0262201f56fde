from __future__ import annotations

from .resilience import (
    CircuitBreaker,
    CircuitBreakerRegistry,
    CircuitBreakerState,
    CircuitState,
    RequestDeduplicator,
    ResilienceLayer,
    RetryConfig,
)
from .policy_resolver import PolicyResolver
from .fix_planner import FixPlanner
from .alert_tracker import AlertStateTracker
from .remediation_executor import BranchSnapshot, RemediationExecutor

__all__ = [
    "CircuitBreaker",
    "CircuitBreakerRegistry",
    "CircuitBreakerState",
    "CircuitState",
    "RequestDeduplicator",
    "ResilienceLayer",
    "RetryConfig",
    "PolicyResolver",
    "FixPlanner",
    "AlertStateTracker",
    "BranchSnapshot",
    "RemediationExecutor",
]
