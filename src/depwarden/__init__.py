from .app.main import remediate, resolve_policy, update_policy, list_alerts

__all__ = [
    "remediate",
    "resolve_policy",
    "update_policy",
    "list_alerts",
]

# stdlib logging defaults: attach NullHandler to prevent 'No handler' warnings
import logging
_logger = logging.getLogger(__name__)
_logger.addHandler(logging.NullHandler())
