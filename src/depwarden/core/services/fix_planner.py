from __future__ import annotations

import json
from typing import Any, Optional

from ..domain.exceptions import DepwardenError, ManifestError
from ..domain.models import AdvisoryNoteEdit, FileEdit, FixPlan, StructuredEdit, VulnerabilityAlert
from ..domain.pull_request import (
    FALLBACK_NOTE_PATH,
    LOCKFILE_NOTE_PATH,
    build_fallback_note,
    build_lockfile_note,
    build_pr_description,
    build_pr_title,
)
from ..domain.versions import is_breaking_change, resolve_target_version
from ..ports import LoggerPort, RepositorySnapshotPort


DEPENDENCY_GROUPS = ("dependencies", "devDependencies")


def detect_indent(text: str) -> int | str:
    """Indentation used by the first indented line; two spaces when unknown."""
    for line in text.splitlines()[1:]:
        stripped = line.lstrip(" \t")
        if stripped and len(stripped) != len(line):
            whitespace = line[: len(line) - len(stripped)]
            return "\t" if whitespace.startswith("\t") else len(whitespace)
    return 2


def serialize_manifest(data: dict[str, Any], original: str) -> str:
    """Re-serialize JSON keeping key order, indentation, line endings and final newline."""
    text = json.dumps(data, indent=detect_indent(original), ensure_ascii=False)
    if original.endswith("\n"):
        text += "\n"
    if "\r\n" in original:
        text = text.replace("\n", "\r\n")
    return text


class FixPlanner:
    """Computes the file edits that move a dependency to a fixed version.

    Falls back to a single advisory note whenever the manifest cannot be
    read or edited, so a remediation always has something to propose.
    """

    def __init__(
        self,
        *,
        logger: LoggerPort,
        manifest_path: str = "package.json",
        lockfile_path: str = "package-lock.json",
    ) -> None:
        self._logger = logger
        self._manifest_path = manifest_path
        self._lockfile_path = lockfile_path

    def plan(self, alert: VulnerabilityAlert, snapshot: RepositorySnapshotPort) -> FixPlan:
        to_version = resolve_target_version(alert)

        try:
            manifest_edit, from_version = self._manifest_edit(alert, snapshot, to_version)
        except (DepwardenError, ValueError) as exc:
            return self._degraded_plan(alert, to_version, reason=str(exc))

        edits: list[FileEdit] = [manifest_edit]
        warnings: list[str] = []

        try:
            has_lockfile = snapshot.read_file(self._lockfile_path) is not None
        except DepwardenError as exc:
            has_lockfile = True
            warnings.append(f"Could not check {self._lockfile_path}: {exc}")

        if has_lockfile:
            edits.append(
                AdvisoryNoteEdit(
                    path=LOCKFILE_NOTE_PATH,
                    content=build_lockfile_note(alert, to_version, self._lockfile_path).encode("utf-8"),
                    message=f"Add security fix notes for {alert.dependency_name}",
                )
            )

        breaking = is_breaking_change(from_version or alert.current_version, to_version)
        self._logger.info(
            "plan_built",
            alert_id=alert.id,
            dependency=alert.dependency_name,
            from_version=from_version,
            to_version=to_version,
            edit_count=len(edits),
            breaking_change=breaking,
        )
        return FixPlan(
            dependency_name=alert.dependency_name,
            from_version=from_version,
            to_version=to_version,
            edits=tuple(edits),
            title=build_pr_title(alert),
            description=build_pr_description(
                alert=alert,
                from_version=from_version,
                to_version=to_version,
                breaking_change=breaking,
                degraded=False,
            ),
            breaking_change=breaking,
            warnings=tuple(warnings),
        )

    def _manifest_edit(
        self,
        alert: VulnerabilityAlert,
        snapshot: RepositorySnapshotPort,
        to_version: str,
    ) -> tuple[StructuredEdit, Optional[str]]:
        manifest = snapshot.read_file(self._manifest_path)
        if manifest is None:
            raise ManifestError(f"{self._manifest_path} not found")

        original = manifest.content.decode("utf-8")
        data = json.loads(original)
        if not isinstance(data, dict):
            raise ManifestError(f"{self._manifest_path} is not a JSON object")

        from_version: Optional[str] = None
        found = False
        for group in DEPENDENCY_GROUPS:
            entries = data.get(group)
            if isinstance(entries, dict) and alert.dependency_name in entries:
                if from_version is None:
                    from_version = str(entries[alert.dependency_name])
                entries[alert.dependency_name] = to_version
                found = True
        if not found:
            raise ManifestError(f"{alert.dependency_name} is not declared in {self._manifest_path}")

        edit = StructuredEdit(
            path=self._manifest_path,
            content=serialize_manifest(data, original).encode("utf-8"),
            base_revision=manifest.revision,
            message=f"Update {alert.dependency_name} to {to_version}",
        )
        return edit, from_version

    def _degraded_plan(self, alert: VulnerabilityAlert, to_version: str, *, reason: str) -> FixPlan:
        self._logger.warning(
            "plan_degraded",
            alert_id=alert.id,
            dependency=alert.dependency_name,
            reason=reason,
        )
        note = AdvisoryNoteEdit(
            path=FALLBACK_NOTE_PATH,
            content=build_fallback_note(alert, to_version).encode("utf-8"),
            message=f"Security alert: Update {alert.dependency_name}",
        )
        breaking = is_breaking_change(alert.current_version, to_version)
        return FixPlan(
            dependency_name=alert.dependency_name,
            from_version=alert.current_version,
            to_version=to_version,
            edits=(note,),
            title=build_pr_title(alert),
            description=build_pr_description(
                alert=alert,
                from_version=alert.current_version,
                to_version=to_version,
                breaking_change=breaking,
                degraded=True,
            ),
            breaking_change=breaking,
            degraded=True,
            warnings=(f"Manifest edit unavailable: {reason}",),
        )
