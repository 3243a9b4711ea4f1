"""Short-lived memory of form submission ids.

Form providers redeliver a webhook when the first delivery is slow or
errors. The deduplicator turns a redelivery inside the window into a no-op.
It is volatile on purpose: the token's consumed flag is the durable guard
against a second delivery, so forgetting ids on restart only costs work.
"""

import logging
import time
from collections.abc import Callable

from app.core.config import settings

logger = logging.getLogger(__name__)

DEFAULT_WINDOW_SECONDS = 15 * 60


class SubmissionDeduplicator:
    """Set of submission ids with per-id expiry.

    Expired ids are purged lazily on each call; the effect matches removing
    each id exactly ``window_seconds`` after it was first seen.

    Safe for a single event loop: ``seen`` has no await points, so the
    check-and-register step cannot interleave with another request.
    """

    def __init__(
        self,
        window_seconds: float = DEFAULT_WINDOW_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Initialize the deduplicator.

        Args:
            window_seconds: How long an id is remembered.
            clock: Monotonic time source (injectable for tests).
        """
        self._window = window_seconds
        self._clock = clock
        self._expires_at: dict[str, float] = {}

    def __len__(self) -> int:
        self._purge()
        return len(self._expires_at)

    def _purge(self) -> None:
        now = self._clock()
        expired = [sid for sid, exp in self._expires_at.items() if exp <= now]
        for sid in expired:
            del self._expires_at[sid]

    def seen(self, submission_id: str) -> bool:
        """Check a submission id and register it if new.

        Args:
            submission_id: Provider-assigned submission identifier.

        Returns:
            True if the id was registered within the window (duplicate),
            False if this is the first sighting (now registered).
        """
        self._purge()
        if submission_id in self._expires_at:
            logger.info("Duplicate submission %s", submission_id)
            return True
        self._expires_at[submission_id] = self._clock() + self._window
        return False

    def release(self, submission_id: str) -> None:
        """Forget an id so a redelivery is processed again."""
        self._expires_at.pop(submission_id, None)


_deduplicator: SubmissionDeduplicator | None = None


def get_deduplicator() -> SubmissionDeduplicator:
    """Get the process-wide deduplicator."""
    global _deduplicator
    if _deduplicator is None:
        _deduplicator = SubmissionDeduplicator(settings.dedupe_window_seconds)
    return _deduplicator


def reset_deduplicator() -> None:
    """Drop the singleton (for testing)."""
    global _deduplicator
    _deduplicator = None
