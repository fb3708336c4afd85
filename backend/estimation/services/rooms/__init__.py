"""Room coordination services: storage, vote rounds and broadcasting.

This package contains the room state machine and its helpers. Socket
handlers and HTTP routes import from here, keeping transport concerns
separated from the rules of a vote round.
"""

from .auto_reveal import should_reveal
from .broadcaster import Broadcaster, SocketIOBroadcaster
from .cheaters import flag_if_tampered
from .directory import PublicRoomDirectory
from .engine import VoteRoundEngine
from .registry import ConnectionRegistry
from .scheduler import RevealScheduler
from .store import RoomStore

__all__ = [
    'Broadcaster',
    'ConnectionRegistry',
    'PublicRoomDirectory',
    'RevealScheduler',
    'RoomStore',
    'SocketIOBroadcaster',
    'VoteRoundEngine',
    'flag_if_tampered',
    'should_reveal',
]
