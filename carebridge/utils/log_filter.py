"""
Filter for known non-critical third-party log noise.

Warnings and errors whose rendered message matches one of the patterns below
are dropped. Lower levels always pass so debug output stays intact.
"""
import logging
import re
from typing import Iterable, List, Optional, Pattern

from carebridge.core.config import settings

SUPPRESSED_PATTERNS = [
    # Gravatar 404s for users without an account
    r"gravatar\.com.*404",
    r"GET.*gravatar.*404",
    r"gravatar.*not found",
    r"gravatar.*failed",

    # Analytics SDK
    r"amplitude",
    r"Event rejected due to exceeded retry count",
    r"Status 'failed' provided for",

    # Video conference permission prompts during prejoin
    r"gum\.permission_denied",
    r"Permission denied.*audio.*video",
    r"NotAllowedError.*Permission denied",
    r"User denied permission.*device",
    r"Unrecognized feature",

    # Blocked or unresolved third-party requests
    r"ERR_BLOCKED_BY_CLIENT",
    r"ERR_NAME_NOT_RESOLVED",

    # Video conference sound lookups
    r"PLAY_SOUND: no sound found",
    r"RECORDING_OFF_SOUND",
    r"no sound found for id",
]


def compile_patterns(extra: Optional[Iterable[str]] = None) -> List[Pattern]:
    patterns = list(SUPPRESSED_PATTERNS)
    if extra:
        patterns.extend(extra)
    return [re.compile(p, re.IGNORECASE) for p in patterns]


_default_patterns = compile_patterns()


def should_suppress(message: str, patterns: Optional[List[Pattern]] = None) -> bool:
    """Check if a message matches any suppressed pattern."""
    return any(p.search(message) for p in (patterns or _default_patterns))


class NoisyLogFilter(logging.Filter):
    """Drops WARNING+ records that match a suppressed pattern."""

    def __init__(self, extra_patterns: Optional[Iterable[str]] = None, min_level: int = logging.WARNING):
        super().__init__()
        self.patterns = compile_patterns(extra_patterns)
        self.min_level = min_level

    def filter(self, record: logging.LogRecord) -> bool:
        if record.levelno < self.min_level:
            return True
        return not should_suppress(record.getMessage(), self.patterns)


def install_log_filter(
    logger: Optional[logging.Logger] = None,
    extra_patterns: Optional[Iterable[str]] = None,
) -> Optional[NoisyLogFilter]:
    """
    Attach a ``NoisyLogFilter`` to every handler of ``logger`` (root by default).

    Safe to call repeatedly: handlers that already carry one are skipped.
    Returns None when suppression is disabled in settings.
    """
    if not settings.suppress_noisy_logs:
        return None

    target = logger or logging.getLogger()
    if extra_patterns is None:
        extra_patterns = settings.extra_suppressed_patterns
    log_filter = NoisyLogFilter(extra_patterns)

    for handler in target.handlers:
        if any(isinstance(f, NoisyLogFilter) for f in handler.filters):
            continue
        handler.addFilter(log_filter)
    return log_filter
