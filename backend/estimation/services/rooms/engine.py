import logging
import random
import string
from typing import Optional

from estimation.errors import RoomAlreadyExists, RoomNotFound
from estimation.models import PUBLIC, SPECTATOR, Participant, Room, RoomSettings

from .auto_reveal import should_reveal
from .broadcaster import Broadcaster
from .cheaters import flag_if_tampered
from .directory import PublicRoomDirectory
from .registry import ConnectionRegistry
from .scheduler import RevealScheduler
from .store import RoomStore


def generate_room_code(length: int = 6) -> str:
    return ''.join(random.choices(string.ascii_lowercase + string.digits, k=length))


class VoteRoundEngine:
    """Vote / reveal / reset state machine for every room.

    Each public method takes the room's lock, mutates, and emits while still
    holding it, so members of a room see its events in mutation order. The
    public directory is republished after the lock is released.
    """

    def __init__(self, broadcaster: Broadcaster, store: Optional[RoomStore] = None,
                 registry: Optional[ConnectionRegistry] = None,
                 scheduler: Optional[RevealScheduler] = None,
                 directory: Optional[PublicRoomDirectory] = None,
                 logger=None, code_length: int = 6):
        self.broadcaster = broadcaster
        self.store = store if store is not None else RoomStore()
        self.registry = registry if registry is not None else ConnectionRegistry()
        self.scheduler = scheduler or RevealScheduler()
        self.directory = directory or PublicRoomDirectory(self.store, broadcaster)
        self.logger = logger or logging.getLogger(__name__)
        self.code_length = code_length

    # ---- membership ----

    def create_room(self, participant: Participant, room_id: Optional[str] = None,
                    visibility: str = PUBLIC, settings: Optional[RoomSettings] = None) -> Room:
        if room_id:
            room = self._create_and_join(room_id, participant, visibility, settings)
        else:
            while True:
                try:
                    room = self._create_and_join(generate_room_code(self.code_length), participant,
                                                 visibility, settings)
                    break
                except RoomAlreadyExists:
                    continue
        self.directory.publish()
        return room

    def _create_and_join(self, room_id, participant, visibility, settings) -> Room:
        with self.store.lock(room_id):
            try:
                room = self.store.create_room(room_id, visibility, settings)
            except RoomAlreadyExists:
                self.logger.info(f"[create-rejected] room={room_id} sid={participant.id} exists")
                raise
            self.logger.info(f"[create] room={room_id} visibility={visibility} sid={participant.id}")
            self._admit_new(room, participant, announce=True)
        return room

    def join(self, room_id: str, participant: Participant) -> Room:
        with self.store.lock(room_id):
            room = self.store.get_room(room_id)
            self._admit(room, participant)
        self.directory.publish()
        return room

    def join_or_create(self, room_id: str, participant: Participant,
                       visibility: str = PUBLIC, settings: Optional[RoomSettings] = None) -> Room:
        # Same per-id lock as create_room: concurrent callers create one room
        with self.store.lock(room_id):
            try:
                room = self.store.get_room(room_id)
            except RoomNotFound:
                room = self.store.create_room(room_id, visibility, settings)
                self.logger.info(f"[create] room={room_id} visibility={visibility} sid={participant.id} via=join-or-create")
                self._admit_new(room, participant)
            else:
                self._admit(room, participant)
        self.directory.publish()
        return room

    def _admit_new(self, room: Room, participant: Participant, announce: bool = False) -> None:
        try:
            self._admit(room, participant, announce=announce)
        except Exception:
            # a room nobody managed to enter must not outlive this call
            self.store.delete_if_empty(room.id)
            raise

    def _admit(self, room: Room, participant: Participant, announce: bool = False) -> None:
        # enter the group first: it can fail for a sid that is already gone
        self.broadcaster.enter(participant.id, room.id)
        room.add_participant(participant)
        self.registry.add(participant.id, room.id)
        if announce:
            self.broadcaster.room_created(participant.id, room)
        self.logger.info(f"[join] room={room.id} sid={participant.id} members={len(room.participants)}")
        self.broadcaster.membership(room)
        self.broadcaster.settings_updated(room)
        if room.round.revealed:
            # late joiner flips with the same order everyone else got
            self.broadcaster.revealed(room, sid=participant.id)

    def leave(self, room_id: str, participant_id: str) -> bool:
        left = self._remove(room_id, participant_id, leave_group=True)
        if left:
            self.directory.publish()
        return left

    def disconnect(self, sid: str) -> None:
        rooms = self.registry.drop(sid)
        removed = False
        for room_id in sorted(rooms):
            # python-socketio drops the sid from its groups itself
            removed = self._remove(room_id, sid, leave_group=False) or removed
        self.logger.info(f"[disconnect] sid={sid} rooms={len(rooms)}")
        if removed:
            self.directory.publish()

    def _remove(self, room_id: str, participant_id: str, leave_group: bool) -> bool:
        with self.store.lock(room_id):
            self.registry.discard(participant_id, room_id)
            if leave_group:
                self.broadcaster.leave(participant_id, room_id)
            try:
                room = self.store.get_room(room_id)
            except RoomNotFound:
                return False
            if room.remove_participant(participant_id) is None:
                return False
            if room.is_empty:
                self.store.delete_if_empty(room_id)
                self.logger.info(f"[delete] room={room_id} last={participant_id}")
            else:
                self.logger.info(f"[leave] room={room_id} sid={participant_id} members={len(room.participants)}")
                self.broadcaster.membership(room)
        return True

    def send_public_rooms(self, sid: str) -> None:
        self.directory.send_to(sid)

    # ---- round ----

    def vote(self, room_id: str, participant_id: str, value: str) -> bool:
        with self.store.lock(room_id):
            room = self.store.get_room(room_id)
            participant = room.participants.get(participant_id)
            if participant is None or participant.is_spectator:
                self.logger.debug(f"[vote-ignored] room={room_id} sid={participant_id}")
                return False
            if flag_if_tampered(room.round, participant_id, value):
                self.logger.info(f"[cheater] room={room_id} sid={participant_id}")
            room.round.votes[participant_id] = value
            self.broadcaster.votes_updated(room)
            self.broadcaster.cheaters_updated(room)
            self._maybe_auto_reveal(room)
        return True

    def reveal(self, room_id: str, actor_id: Optional[str] = None) -> bool:
        with self.store.lock(room_id):
            room = self.store.get_room(room_id)
            if not self._may_act(room, actor_id):
                return False
            return self._reveal(room)

    def reset(self, room_id: str, actor_id: Optional[str] = None) -> bool:
        with self.store.lock(room_id):
            room = self.store.get_room(room_id)
            if not self._may_act(room, actor_id):
                return False
            self._reset(room)
        return True

    def set_role(self, room_id: str, participant_id: str, role: str) -> bool:
        with self.store.lock(room_id):
            room = self.store.get_room(room_id)
            participant = room.participants.get(participant_id)
            if participant is None:
                return False
            participant.role = role
            if role == SPECTATOR:
                room.round.forget(participant_id)
            self.logger.info(f"[role] room={room_id} sid={participant_id} role={role}")
            self.broadcaster.membership(room)
            self._maybe_auto_reveal(room)
        return True

    def set_card_scale(self, room_id: str, scale: str, actor_id: Optional[str] = None) -> bool:
        with self.store.lock(room_id):
            room = self.store.get_room(room_id)
            if not self._may_act(room, actor_id):
                return False
            room.settings.card_scale = scale
            # votes from one scale never survive into another
            self._reset(room)
            self.broadcaster.settings_updated(room)
        return True

    def set_auto_reveal(self, room_id: str, enabled: bool, actor_id: Optional[str] = None) -> bool:
        with self.store.lock(room_id):
            room = self.store.get_room(room_id)
            if not self._may_act(room, actor_id):
                return False
            room.settings.auto_reveal = bool(enabled)
            self.broadcaster.settings_updated(room)
            if enabled:
                self._maybe_auto_reveal(room)
        return True

    # ---- helpers, caller holds the room lock ----

    def _may_act(self, room: Room, actor_id: Optional[str]) -> bool:
        if actor_id is None or actor_id in room.participants:
            return True
        self.logger.debug(f"[forbidden] room={room.id} sid={actor_id}")
        return False

    def _reveal(self, room: Room) -> bool:
        if room.round.revealed or not room.round.votes:
            return False
        room.round.revealed = True
        room.round.cheaters = set()
        room.round.reveal_order = self.scheduler.schedule(room.round.votes.keys())
        self.logger.info(f"[reveal] room={room.id} votes={len(room.round.votes)}")
        self.broadcaster.revealed(room)
        self.broadcaster.cheaters_updated(room)
        return True

    def _reset(self, room: Room) -> None:
        room.round.clear()
        self.logger.info(f"[reset] room={room.id}")
        self.broadcaster.reset(room)
        self.broadcaster.votes_updated(room)
        self.broadcaster.cheaters_updated(room)

    def _maybe_auto_reveal(self, room: Room) -> bool:
        if not should_reveal(room):
            return False
        self.logger.info(f"[auto-reveal] room={room.id}")
        return self._reveal(room)
