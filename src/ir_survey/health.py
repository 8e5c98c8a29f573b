"""
Page health tracking for the survey loop.

Counts consecutive URL-level failures on the shared browser page; once the
threshold is reached the runner discards the page and opens a fresh one.
"""

from dataclasses import dataclass, asdict
from datetime import datetime, timezone
from typing import Any, Dict, Optional


# Consecutive URL-level failures before the page is recreated
CONSECUTIVE_FAILURES_RECYCLE = 3


@dataclass
class PageHealth:
    """Failure history for the page currently in use."""
    threshold: int = CONSECUTIVE_FAILURES_RECYCLE
    consecutive_failures: int = 0
    total_successes: int = 0
    total_failures: int = 0
    recycles: int = 0
    last_success_at: Optional[str] = None
    last_failure_at: Optional[str] = None
    last_error: Optional[str] = None
    status: str = "OK"  # OK, DEGRADED

    def update_status(self):
        """Update status based on consecutive failures."""
        self.status = "DEGRADED" if self.needs_recycle else "OK"

    @property
    def needs_recycle(self) -> bool:
        return self.consecutive_failures >= self.threshold

    def record_success(self, timestamp: Optional[datetime] = None):
        """Record a URL that completed without a URL-level error."""
        if timestamp is None:
            timestamp = datetime.now(timezone.utc)

        self.last_success_at = timestamp.isoformat()
        self.consecutive_failures = 0
        self.total_successes += 1
        self.update_status()

    def record_failure(self, error: str, timestamp: Optional[datetime] = None):
        """Record a URL-level failure."""
        if timestamp is None:
            timestamp = datetime.now(timezone.utc)

        self.last_failure_at = timestamp.isoformat()
        self.consecutive_failures += 1
        self.total_failures += 1
        self.last_error = error
        self.update_status()

    def record_recycle(self):
        """The page was replaced; start counting again."""
        self.recycles += 1
        self.consecutive_failures = 0
        self.update_status()

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
