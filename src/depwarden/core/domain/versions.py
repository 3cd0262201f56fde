from __future__ import annotations

import re
from typing import Optional

from .models import VersionChange, VulnerabilityAlert


LATEST = "latest"

_DESCRIPTION_VERSION = re.compile(r">=\s*([0-9]+(?:\.[0-9]+)*)")
_RANGE_PREFIX = re.compile(r"^[\s^~>=<v]+")


def resolve_target_version(alert: VulnerabilityAlert) -> str:
    """Pick the version a fix should move to.

    Priority: explicit fixed version, then a ">= X.Y.Z" hint in the description,
    then the "latest" sentinel.
    """
    if alert.fixed_version:
        return f"^{strip_range(alert.fixed_version)}"
    if alert.description:
        match = _DESCRIPTION_VERSION.search(alert.description)
        if match:
            return f"^{match.group(1)}"
    return LATEST


def strip_range(spec: str) -> str:
    """Drop range operators: "^1.2.3" -> "1.2.3"."""
    return _RANGE_PREFIX.sub("", spec.strip())


def parse_version(spec: Optional[str]) -> Optional[tuple[int, ...]]:
    """Parse the numeric head of a version spec, or None when there is none."""
    if not spec or spec == LATEST:
        return None
    bare = strip_range(spec)
    parts: list[int] = []
    for piece in bare.split(".")[:3]:
        digits = re.match(r"\d+", piece)
        if digits is None:
            break
        parts.append(int(digits.group(0)))
        if digits.group(0) != piece:
            break
    if not parts:
        return None
    while len(parts) < 3:
        parts.append(0)
    return tuple(parts)


def classify_change(current: Optional[str], target: Optional[str]) -> Optional[VersionChange]:
    """Size of the bump from current to target; None when either is unknown."""
    cur = parse_version(current)
    tgt = parse_version(target)
    if cur is None or tgt is None:
        return None
    if tgt[0] != cur[0]:
        return VersionChange.MAJOR
    if tgt[1] != cur[1]:
        return VersionChange.MINOR
    if tgt[2:] != cur[2:]:
        return VersionChange.PATCH
    return VersionChange.NONE


def is_breaking_change(current: Optional[str], target: Optional[str]) -> bool:
    """Major version differs between current and target."""
    return classify_change(current, target) is VersionChange.MAJOR
