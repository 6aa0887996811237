from __future__ import annotations

import copy
import threading
from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, Mapping, Optional


class SlotStore:
    """Process-wide map of user id to the slots accumulated across turns.

    Nothing is persisted; a restart forgets every conversation.
    """

    def __init__(self) -> None:
        self._records: Dict[str, Dict[str, Any]] = {}
        self._guard = threading.Lock()
        # user id -> [lock, number of callers holding or waiting on it]
        self._user_locks: Dict[str, List[Any]] = {}

    def get(self, user_id: str) -> Optional[Dict[str, Any]]:
        with self._guard:
            record = self._records.get(user_id)
            return copy.deepcopy(record) if record is not None else None

    def merge(self, user_id: str, updates: Optional[Mapping[str, Any]]) -> Dict[str, Any]:
        # Keys missing from updates are left untouched.
        with self._guard:
            record = self._records.setdefault(user_id, {})
            for key, value in (updates or {}).items():
                record[key] = copy.deepcopy(value)
            return copy.deepcopy(record)

    def clear(self, user_id: str) -> None:
        with self._guard:
            self._records.pop(user_id, None)

    def __contains__(self, user_id: object) -> bool:
        with self._guard:
            return user_id in self._records

    @contextmanager
    def lock(self, user_id: str) -> Iterator[None]:
        """Serialize turns for one user; other users are not blocked.

        The per-user lock is dropped as soon as nobody holds or waits on it.
        """
        with self._guard:
            entry = self._user_locks.setdefault(user_id, [threading.RLock(), 0])
            entry[1] += 1
        try:
            with entry[0]:
                yield
        finally:
            with self._guard:
                entry[1] -= 1
                if entry[1] == 0:
                    del self._user_locks[user_id]
