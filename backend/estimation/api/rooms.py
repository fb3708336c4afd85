from flask import Blueprint, current_app, jsonify

from estimation.errors import RoomNotFound

rooms = Blueprint('rooms', __name__)


def _engine():
    return current_app.extensions['estimation']


@rooms.route('/public', methods=['GET'])
def list_public_rooms():
    """Same listing the socket clients receive as ``public-rooms-updated``."""
    return jsonify(_engine().directory.listing())


@rooms.route('/<string:room_id>', methods=['GET'])
def get_room(room_id):
    """Summary of a public room. Private rooms are indistinguishable from missing ones."""
    engine = _engine()
    try:
        with engine.store.lock(room_id):
            room = engine.store.get_room(room_id)
            if not room.is_public:
                raise RoomNotFound()
            summary = room.to_dict()
    except RoomNotFound as exc:
        return jsonify({'error': exc.message}), 404
    return jsonify(summary)
