"""In-flight guard preventing concurrent actions on the same submission."""

import threading


class InFlightGuard:
    """Owns the set of submission ids with an approve/reject call in progress.

    The set is never handed out; callers only ask to acquire or release an id.
    Check-then-add happens under a lock so the guard holds even when driven
    from worker threads rather than a single event loop.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._ids: set[int] = set()

    def try_acquire(self, submission_id: int) -> bool:
        """Mark an id as in flight. Returns False if it already was."""
        with self._lock:
            if submission_id in self._ids:
                return False
            self._ids.add(submission_id)
            return True

    def release(self, submission_id: int) -> None:
        """Clear an id; releasing an id that is not held is a no-op."""
        with self._lock:
            self._ids.discard(submission_id)

    def is_in_flight(self, submission_id: int) -> bool:
        """Whether an action on this id is currently running."""
        with self._lock:
            return submission_id in self._ids

    def __len__(self) -> int:
        with self._lock:
            return len(self._ids)
