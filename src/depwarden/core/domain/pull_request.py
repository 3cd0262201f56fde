from __future__ import annotations

import re

from .models import VulnerabilityAlert
from .versions import LATEST


LOCKFILE_NOTE_PATH = "SECURITY_FIX_NOTES.md"
FALLBACK_NOTE_PATH = "SECURITY_UPDATE_REQUIRED.md"

_UNSAFE_REF_CHARS = re.compile(r"[^A-Za-z0-9._-]+")


def build_branch_name(prefix: str, dependency: str, stamp: int) -> str:
    """Branch name from prefix, dependency and a high-resolution timestamp.

    Scoped package names such as "@babel/core" are flattened to a ref-safe slug.
    """
    slug = _UNSAFE_REF_CHARS.sub("-", dependency).strip("-.") or "dependency"
    return f"{prefix.rstrip('/-')}-{slug}-{stamp}"


def install_command(dependency: str, to_version: str) -> str:
    if to_version == LATEST:
        return f"npm install {dependency}@latest"
    return f"npm install {dependency}@{to_version.lstrip('^~')}"


def build_pr_title(alert: VulnerabilityAlert) -> str:
    return f"Auto-fix: Update {alert.dependency_name} to address {alert.alert_type.value} alert"


def build_pr_description(
    *,
    alert: VulnerabilityAlert,
    from_version: str | None,
    to_version: str,
    breaking_change: bool,
    degraded: bool,
) -> str:
    """Pull request body: what changed, why, and what the reviewer must check."""
    description = alert.description or "Security vulnerability detected in dependency."
    if degraded:
        change_line = (
            f"- Could not edit the dependency manifest automatically; see "
            f"`{FALLBACK_NOTE_PATH}` for the manual steps"
        )
    else:
        change_line = f"- Updated `{alert.dependency_name}` from `{from_version or 'unknown'}` to `{to_version}`"

    lines = [
        f"## Security Fix: {alert.dependency_name}",
        "",
        f"**Dependency:** `{alert.dependency_name}`",
        f"**Alert Type:** {alert.alert_type.value}",
        f"**Severity:** {alert.severity.value}",
        f"**Target Version:** {to_version}",
        f"**Breaking Change:** {'yes' if breaking_change else 'no'}",
        "",
        "### Description",
        description,
        "",
        "### Changes Made",
        change_line,
        "",
        "### Reviewer Checklist",
        "- [ ] Verify the dependency update does not break functionality",
        f"- [ ] Reinstall dependencies (`{install_command(alert.dependency_name, to_version)}`)",
        "- [ ] Run the test suite",
        "- [ ] Regenerate the lockfile if one is committed",
        "- [ ] Test in a staging environment before merging",
        "",
        "---",
        "*This pull request was generated automatically by depwarden.*",
    ]
    return "\n".join(lines) + "\n"


def build_lockfile_note(alert: VulnerabilityAlert, to_version: str, lockfile_path: str) -> str:
    return (
        "# Security Fix Applied\n"
        "\n"
        f"**Important:** run `npm install` to regenerate `{lockfile_path}` after merging this PR.\n"
        "\n"
        "## Fix Details\n"
        f"- Dependency: {alert.dependency_name}\n"
        f"- Alert type: {alert.alert_type.value}\n"
        f"- Fixed version: {to_version}\n"
        f"- Vulnerability: {alert.description or 'Security vulnerability'}\n"
        "\n"
        "## Next Steps\n"
        "1. Review the changes\n"
        f"2. Run `npm install` to update {lockfile_path}\n"
        "3. Test your application\n"
        "4. Merge when ready\n"
    )


def build_fallback_note(alert: VulnerabilityAlert, to_version: str) -> str:
    return (
        "# Security Update Required\n"
        "\n"
        f"**Security Alert:** {alert.dependency_name} ({alert.severity.value})\n"
        "\n"
        "## Issue\n"
        f"{alert.description or 'Security vulnerability detected'}\n"
        "\n"
        "## Recommended Action\n"
        f"Update {alert.dependency_name} to {to_version}.\n"
        "\n"
        "## Manual Fix\n"
        "```bash\n"
        f"{install_command(alert.dependency_name, to_version)}\n"
        "```\n"
    )
