from __future__ import annotations

import re

from .exceptions import InvalidRepositoryUrlError
from .models import RepositoryCoordinates


_SEGMENT = re.compile(r"^[A-Za-z0-9_.-]+$")


def parse_repository_url(url: str) -> RepositoryCoordinates:
    """Extract owner/name from a stored repository URL.

    Accepts:
    - "https://github.com/owner/name[.git]"
    - "git@github.com:owner/name[.git]"
    - "owner/name"
    """
    raw = (url or "").strip()
    if raw.startswith("git@"):
        _, _, path = raw.partition(":")
    elif "://" in raw:
        _, _, rest = raw.partition("://")
        _, _, path = rest.partition("/")
    else:
        path = raw

    path = path.strip("/")
    if path.endswith(".git"):
        path = path[:-4]

    parts = path.split("/")
    if len(parts) != 2 or not all(_SEGMENT.match(p) for p in parts):
        raise InvalidRepositoryUrlError(url)
    owner, name = parts
    return RepositoryCoordinates(owner=owner, name=name)
