from typing import Dict, List, Optional, Set

PUBLIC = 'public'
PRIVATE = 'private'
VISIBILITIES = (PUBLIC, PRIVATE)

VOTER = 'voter'
SPECTATOR = 'spectator'

NUMERIC = 'numeric'
TSHIRT = 'tshirt'
CARD_SCALES = (NUMERIC, TSHIRT)


class Participant:
    def __init__(self, id: str, display_name: str, role: str = VOTER):
        self.id = id
        self.display_name = display_name
        self.role = role

    @property
    def is_spectator(self) -> bool:
        return self.role == SPECTATOR

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.display_name,
            'spectator': self.is_spectator,
        }


class RoomSettings:
    def __init__(self, auto_reveal: bool = False, card_scale: str = NUMERIC):
        self.auto_reveal = auto_reveal
        self.card_scale = card_scale

    def to_dict(self):
        return {
            'autoReveal': bool(self.auto_reveal),
            'cardScale': self.card_scale,
            # kept for clients that only know the boolean toggle
            'tShirtMode': self.card_scale == TSHIRT,
        }


class RevealSlot:
    def __init__(self, participant_id: str, delay_ms: int):
        self.participant_id = participant_id
        self.delay_ms = delay_ms

    def to_dict(self):
        return {'id': self.participant_id, 'delay': self.delay_ms}


class VoteRound:
    """Votes of the current round.

    Open while ``revealed`` is False. ``cheaters`` and ``reveal_order`` are
    only ever populated while revealed.
    """

    def __init__(self):
        self.revealed = False
        self.votes: Dict[str, str] = {}
        self.cheaters: Set[str] = set()
        self.reveal_order: List[RevealSlot] = []

    def clear(self) -> None:
        self.revealed = False
        self.votes = {}
        self.cheaters = set()
        self.reveal_order = []

    def forget(self, participant_id: str) -> None:
        self.votes.pop(participant_id, None)
        self.cheaters.discard(participant_id)

    def reveal_payload(self):
        return {'revealOrder': [slot.to_dict() for slot in self.reveal_order]}


class Room:
    def __init__(self, id: str, visibility: str = PUBLIC, settings: Optional[RoomSettings] = None):
        self.id = id
        self.visibility = visibility
        self.settings = settings or RoomSettings()
        # insertion ordered; a re-join moves the participant to the end
        self.participants: Dict[str, Participant] = {}
        self.round = VoteRound()

    @property
    def is_public(self) -> bool:
        return self.visibility == PUBLIC

    @property
    def is_empty(self) -> bool:
        return not self.participants

    def voters(self) -> List[Participant]:
        return [p for p in self.participants.values() if not p.is_spectator]

    def add_participant(self, participant: Participant) -> None:
        self.participants.pop(participant.id, None)
        self.participants[participant.id] = participant

    def remove_participant(self, participant_id: str) -> Optional[Participant]:
        removed = self.participants.pop(participant_id, None)
        self.round.forget(participant_id)
        return removed

    def users_payload(self):
        return [p.to_dict() for p in self.participants.values()]

    def votes_payload(self):
        return dict(self.round.votes)

    def cheaters_payload(self):
        return sorted(self.round.cheaters)

    def to_dict(self):
        return {
            'roomId': self.id,
            'visibility': self.visibility,
            'count': len(self.participants),
            'revealed': self.round.revealed,
            'settings': self.settings.to_dict(),
        }
