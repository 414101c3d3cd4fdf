"""Building blocks for API server components: validation, label selectors, flags, scopes, quota locks and security strategies."""

__version__ = "0.1.0"

__all__ = [
    "capabilities",
    "configflags",
    "groups",
    "labelselector",
    "quotalocks",
    "scope",
    "validation",
]