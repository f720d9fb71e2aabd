
from .client import ChaseActivityClient
from .download_flow import OptionDownloadSequence
from .resolve import ResolvedElement, resolve_visible
from .selectors import ChaseSelectors

__all__ = [
    "ChaseActivityClient",
    "ChaseSelectors",
    "OptionDownloadSequence",
    "ResolvedElement",
    "resolve_visible",
]
