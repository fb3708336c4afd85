"""Errors surfaced to the connection that sent the offending event.

None of these are ever broadcast to a room.
"""


class RoomError(Exception):
    message = 'room error'

    def __init__(self, message=None):
        super().__init__(message or self.message)
        if message:
            self.message = message


class RoomNotFound(RoomError):
    message = 'room not found'


class RoomAlreadyExists(RoomError):
    message = 'room code already exists'


class InvalidPayload(RoomError):
    message = 'invalid payload'

    def __init__(self, event: str):
        super().__init__(f'invalid payload: {event}')
        self.event = event
