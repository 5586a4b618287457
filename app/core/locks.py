from contextlib import contextmanager
from threading import Lock
from typing import Iterator

from app.core.exceptions import ConflictError


class _Entry:
    __slots__ = ("lock", "holders")

    def __init__(self):
        self.lock = Lock()
        self.holders = 0


class InterviewLockRegistry:
    """
    One mutex per interview id, so answer submissions are serialized per interview.

    An entry lives only while some thread holds or waits for it; the last one
    out removes it, so the registry stays as small as the number of in-flight
    submissions.
    """

    def __init__(self):
        self._lock = Lock()
        self._entries: dict[int, _Entry] = {}

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def _checkout(self, interview_id: int) -> _Entry:
        with self._lock:
            entry = self._entries.get(interview_id)
            if entry is None:
                entry = _Entry()
                self._entries[interview_id] = entry
            entry.holders += 1
            return entry

    def _checkin(self, interview_id: int, entry: _Entry):
        with self._lock:
            entry.holders -= 1
            if entry.holders == 0 and self._entries.get(interview_id) is entry:
                del self._entries[interview_id]

    @contextmanager
    def hold(self, interview_id: int, timeout: float = -1) -> Iterator[None]:
        entry = self._checkout(interview_id)
        try:
            if not entry.lock.acquire(timeout=timeout):
                raise ConflictError("Another answer for this interview is still being evaluated.")
            try:
                yield
            finally:
                entry.lock.release()
        finally:
            self._checkin(interview_id, entry)


interview_locks = InterviewLockRegistry()
