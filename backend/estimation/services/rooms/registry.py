import threading
from typing import Dict, Set


class ConnectionRegistry:
    """Which rooms each live connection belongs to.

    Consulted by the disconnect handler; the engine keeps it in step with
    room membership on every join and leave.
    """

    def __init__(self):
        self._rooms_by_sid: Dict[str, Set[str]] = {}
        self._lock = threading.Lock()

    def add(self, sid: str, room_id: str) -> None:
        with self._lock:
            self._rooms_by_sid.setdefault(sid, set()).add(room_id)

    def discard(self, sid: str, room_id: str) -> None:
        with self._lock:
            rooms = self._rooms_by_sid.get(sid)
            if rooms is None:
                return
            rooms.discard(room_id)
            if not rooms:
                del self._rooms_by_sid[sid]

    def rooms_of(self, sid: str) -> Set[str]:
        with self._lock:
            return set(self._rooms_by_sid.get(sid, ()))

    def drop(self, sid: str) -> Set[str]:
        with self._lock:
            return self._rooms_by_sid.pop(sid, set())

    def __contains__(self, sid):
        with self._lock:
            return sid in self._rooms_by_sid
