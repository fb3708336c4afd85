import threading
from contextlib import contextmanager
from typing import Dict, List, MutableMapping, Optional

from estimation.errors import RoomAlreadyExists, RoomNotFound
from estimation.models import PUBLIC, Room, RoomSettings


class _LockEntry:
    __slots__ = ('lock', 'holders')

    def __init__(self):
        self.lock = threading.RLock()
        self.holders = 0


class RoomStore:
    """Authoritative map of room id -> Room.

    Work on one room id is serialized with ``lock(room_id)``. The lock table
    is keyed by id rather than by Room, so a create racing a join-or-create
    (or a delete) on the same id still queues behind a single lock. Locks of
    different ids never wait on each other; ``_guard`` only covers the
    bookkeeping of the two dicts.

    ``backend`` may be any MutableMapping, e.g. a sharded store.
    """

    def __init__(self, backend: Optional[MutableMapping[str, Room]] = None):
        self._rooms: MutableMapping[str, Room] = backend if backend is not None else {}
        self._locks: Dict[str, _LockEntry] = {}
        self._guard = threading.Lock()

    @contextmanager
    def lock(self, room_id: str):
        with self._guard:
            entry = self._locks.get(room_id)
            if entry is None:
                entry = self._locks[room_id] = _LockEntry()
            entry.holders += 1
        entry.lock.acquire()
        try:
            yield
        finally:
            entry.lock.release()
            with self._guard:
                entry.holders -= 1
                if entry.holders == 0 and self._locks.get(room_id) is entry:
                    del self._locks[room_id]

    def create_room(self, room_id: str, visibility: str = PUBLIC,
                    settings: Optional[RoomSettings] = None) -> Room:
        with self._guard:
            if room_id in self._rooms:
                raise RoomAlreadyExists()
            room = Room(room_id, visibility=visibility, settings=settings)
            self._rooms[room_id] = room
            return room

    def get_room(self, room_id: str) -> Room:
        with self._guard:
            room = self._rooms.get(room_id)
        if room is None:
            raise RoomNotFound()
        return room

    def exists(self, room_id: str) -> bool:
        with self._guard:
            return room_id in self._rooms

    def delete_if_empty(self, room_id: str) -> bool:
        with self._guard:
            room = self._rooms.get(room_id)
            if room is None or not room.is_empty:
                return False
            del self._rooms[room_id]
            return True

    def rooms(self) -> List[Room]:
        with self._guard:
            return list(self._rooms.values())

    def __len__(self):
        with self._guard:
            return len(self._rooms)
