from typing import Any

from estimation.models import Room

# Outbound event names
ROOM_CREATED = 'room-created'
USERS_UPDATED = 'users-updated'
VOTES_UPDATED = 'votes-updated'
CHEATERS_UPDATED = 'cheaters-updated'
SETTINGS_UPDATED = 'room-settings-updated'
REVEALED = 'revealed'
RESET = 'reset'
PUBLIC_ROOMS_UPDATED = 'public-rooms-updated'
ERROR = 'error'


class Broadcaster:
    """Outbound side of the engine.

    Subclasses provide the five transport primitives; the event helpers
    below are the only events the engine ever emits.
    """

    def enter(self, sid: str, room_id: str) -> None:
        raise NotImplementedError

    def leave(self, sid: str, room_id: str) -> None:
        raise NotImplementedError

    def to_room(self, room_id: str, event: str, payload: Any = None) -> None:
        raise NotImplementedError

    def to_all(self, event: str, payload: Any = None) -> None:
        raise NotImplementedError

    def to_connection(self, sid: str, event: str, payload: Any = None) -> None:
        raise NotImplementedError

    def room_created(self, sid: str, room: Room) -> None:
        self.to_connection(sid, ROOM_CREATED, room.id)

    def users_updated(self, room: Room) -> None:
        self.to_room(room.id, USERS_UPDATED, room.users_payload())

    def votes_updated(self, room: Room) -> None:
        self.to_room(room.id, VOTES_UPDATED, room.votes_payload())

    def cheaters_updated(self, room: Room) -> None:
        self.to_room(room.id, CHEATERS_UPDATED, room.cheaters_payload())

    def settings_updated(self, room: Room) -> None:
        self.to_room(room.id, SETTINGS_UPDATED, room.settings.to_dict())

    def membership(self, room: Room) -> None:
        self.users_updated(room)
        self.votes_updated(room)
        self.cheaters_updated(room)

    def revealed(self, room: Room, sid: str = None) -> None:
        payload = room.round.reveal_payload()
        if sid is None:
            self.to_room(room.id, REVEALED, payload)
        else:
            self.to_connection(sid, REVEALED, payload)

    def reset(self, room: Room) -> None:
        self.to_room(room.id, RESET)

    def public_rooms(self, listing, sid: str = None) -> None:
        if sid is None:
            self.to_all(PUBLIC_ROOMS_UPDATED, listing)
        else:
            self.to_connection(sid, PUBLIC_ROOMS_UPDATED, listing)

    def error(self, sid: str, message: str) -> None:
        self.to_connection(sid, ERROR, message)


def group_name(room_id: str) -> str:
    return f'room:{room_id}'


class SocketIOBroadcaster(Broadcaster):
    """Broadcaster backed by a Flask-SocketIO server, one namespace.

    Uses the underlying server directly so it works both inside event
    handlers and from background tasks without a request context.
    """

    def __init__(self, socketio, namespace: str = '/'):
        self.socketio = socketio
        self.namespace = namespace

    def enter(self, sid, room_id):
        self.socketio.server.enter_room(sid, group_name(room_id), namespace=self.namespace)

    def leave(self, sid, room_id):
        self.socketio.server.leave_room(sid, group_name(room_id), namespace=self.namespace)

    def _emit(self, event, payload, to=None):
        if payload is None:
            self.socketio.emit(event, to=to, namespace=self.namespace)
        else:
            self.socketio.emit(event, payload, to=to, namespace=self.namespace)

    def to_room(self, room_id, event, payload=None):
        self._emit(event, payload, to=group_name(room_id))

    def to_all(self, event, payload=None):
        self._emit(event, payload)

    def to_connection(self, sid, event, payload=None):
        self._emit(event, payload, to=sid)
