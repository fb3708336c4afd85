from estimation.models import Room


def should_reveal(room: Room) -> bool:
    """True when an auto-reveal room has a complete, still hidden round.

    Reads current state only, so calling it again after a reveal (or with
    nothing changed) is harmless.
    """
    if not room.settings.auto_reveal or room.round.revealed:
        return False
    voters = room.voters()
    if not voters or not room.round.votes:
        return False
    return all(v.id in room.round.votes for v in voters)
