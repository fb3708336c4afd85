from functools import wraps

from flask import current_app, request

from estimation import socketio
from estimation.errors import RoomError
from estimation.models import SPECTATOR, VOTER, Participant, RoomSettings
from estimation.schemas import parse_event


def _get_sid() -> str:
    # request.sid exists in Socket.IO context
    return request.sid  # type: ignore


def _engine():
    return current_app.extensions['estimation']


def _room_event(event: str):
    """Validate the payload for ``event`` and report RoomErrors to the sender only."""
    def decorator(fn):
        @wraps(fn)
        def handler(data=None):
            sid = _get_sid()
            engine = _engine()
            try:
                fn(engine, sid, parse_event(event, data))
            except RoomError as exc:
                current_app.logger.info(f"[error] event={event} sid={sid} message={exc.message}")
                engine.broadcaster.error(sid, exc.message)
        handler.event_name = event
        return handler
    return decorator


def handle_connect(auth=None):
    # new clients land on the room-selection screen
    _engine().send_public_rooms(_get_sid())


def handle_disconnect(reason=None):
    _engine().disconnect(_get_sid())


def handle_get_public_rooms(data=None):
    _engine().send_public_rooms(_get_sid())


@_room_event('create-room')
def handle_create_room(engine, sid, event):
    settings = RoomSettings(auto_reveal=event.auto_reveal, card_scale=event.resolved_card_scale())
    engine.create_room(
        Participant(sid, event.display_name),
        room_id=event.room_code or None,
        visibility=event.visibility,
        settings=settings,
    )


@_room_event('join-room')
def handle_join_room(engine, sid, event):
    engine.join(event.room_id, Participant(sid, event.display_name))


@_room_event('join-or-create-room')
def handle_join_or_create_room(engine, sid, event):
    settings = RoomSettings(auto_reveal=event.auto_reveal, card_scale=event.resolved_card_scale())
    engine.join_or_create(
        event.room_id,
        Participant(sid, event.display_name),
        visibility=event.visibility,
        settings=settings,
    )


@_room_event('vote')
def handle_vote(engine, sid, event):
    engine.vote(event.room_id, sid, event.value)


@_room_event('reveal')
def handle_reveal(engine, sid, event):
    engine.reveal(event.room_id, actor_id=sid)


@_room_event('reset')
def handle_reset(engine, sid, event):
    engine.reset(event.room_id, actor_id=sid)


@_room_event('set-spectator')
def handle_set_spectator(engine, sid, event):
    engine.set_role(event.room_id, sid, SPECTATOR if event.spectator else VOTER)


@_room_event('set-auto-reveal')
def handle_set_auto_reveal(engine, sid, event):
    engine.set_auto_reveal(event.room_id, event.auto_reveal, actor_id=sid)


@_room_event('set-card-scale')
def handle_set_card_scale(engine, sid, event):
    engine.set_card_scale(event.room_id, event.scale, actor_id=sid)


@_room_event('set-tshirt-mode')
def handle_set_tshirt_mode(engine, sid, event):
    engine.set_card_scale(event.room_id, event.scale, actor_id=sid)


@_room_event('leave-room')
def handle_leave_room(engine, sid, event):
    # leaving a room that is already gone is not an error
    engine.leave(event.room_id, sid)


ROOM_HANDLERS = [
    handle_create_room,
    handle_join_room,
    handle_join_or_create_room,
    handle_vote,
    handle_reveal,
    handle_reset,
    handle_set_spectator,
    handle_set_auto_reveal,
    handle_set_card_scale,
    handle_set_tshirt_mode,
    handle_leave_room,
]


def register_socketio_handlers(namespace: str = '/') -> None:
    """Register Socket.IO event handlers on ``namespace``."""
    socketio.on_event('connect', handle_connect, namespace=namespace)
    socketio.on_event('disconnect', handle_disconnect, namespace=namespace)
    socketio.on_event('get-public-rooms', handle_get_public_rooms, namespace=namespace)
    for handler in ROOM_HANDLERS:
        socketio.on_event(handler.event_name, handler, namespace=namespace)
