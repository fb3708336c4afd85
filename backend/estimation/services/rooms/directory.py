import threading
from typing import Dict, List

from .broadcaster import Broadcaster
from .store import RoomStore


class PublicRoomDirectory:
    """Listing of public rooms with live participant counts.

    ``publish`` computes and sends under one lock, so successive broadcasts
    go out in the order they were computed and each one reflects every
    mutation completed before it started.
    """

    def __init__(self, store: RoomStore, broadcaster: Broadcaster):
        self.store = store
        self.broadcaster = broadcaster
        self._lock = threading.Lock()
        self._last_sent: List[Dict] = []

    def listing(self) -> List[Dict]:
        rooms = [r for r in self.store.rooms() if r.is_public]
        rooms.sort(key=lambda r: r.id)
        return [{'roomId': r.id, 'count': len(r.participants)} for r in rooms]

    def publish(self) -> bool:
        with self._lock:
            listing = self.listing()
            if listing == self._last_sent:
                return False
            self._last_sent = listing
            self.broadcaster.public_rooms(listing)
            return True

    def send_to(self, sid: str) -> None:
        with self._lock:
            self.broadcaster.public_rooms(self.listing(), sid=sid)
