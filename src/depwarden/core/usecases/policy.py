from __future__ import annotations

from typing import Iterable, Optional

from ..domain.models import (
    BulkUpdateResult,
    PackageRule,
    PolicyUpdate,
    PolicyUpdateResult,
    RepositoryAutoFixConfig,
    ValidationReport,
)
from ..services import PolicyResolver


class ResolvePolicyUseCase:
    def __init__(self, *, policy: PolicyResolver) -> None:
        self._policy = policy

    def execute(self, repository_id: int, package: Optional[str] = None) -> RepositoryAutoFixConfig:
        return self._policy.resolve(repository_id, package)


class UpdatePolicyUseCase:
    """Validate and persist a partial policy update.

    ConfigValidationError propagates to the caller unchanged; warnings of an
    accepted update are returned next to the stored config.
    """

    def __init__(self, *, policy: PolicyResolver) -> None:
        self._policy = policy

    def execute(self, repository_id: int, update: PolicyUpdate) -> PolicyUpdateResult:
        config = self._policy.update(repository_id, update)
        report = self._policy.validate(config)
        return PolicyUpdateResult(config=config, warnings=report.warnings)


class BulkUpdatePolicyUseCase:
    def __init__(self, *, policy: PolicyResolver) -> None:
        self._policy = policy

    def execute(self, updates: Iterable[tuple[int, PolicyUpdate]]) -> BulkUpdateResult:
        return self._policy.bulk_update(updates)


class ValidatePolicyUseCase:
    """Validate the effective config currently stored for a repository."""

    def __init__(self, *, policy: PolicyResolver) -> None:
        self._policy = policy

    def execute(self, repository_id: int) -> ValidationReport:
        return self._policy.validate(self._policy.resolve(repository_id))


class CreatePackageRuleUseCase:
    def __init__(self, *, policy: PolicyResolver) -> None:
        self._policy = policy

    def execute(self, repository_id: int, rule: PackageRule) -> RepositoryAutoFixConfig:
        self._policy.create_package_rule(repository_id, rule)
        return self._policy.resolve(repository_id, rule.package_name)
