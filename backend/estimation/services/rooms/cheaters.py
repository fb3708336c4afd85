from estimation.models import VoteRound


def flag_if_tampered(round: VoteRound, participant_id: str, value: str) -> bool:
    """Apply the cheater rule to a vote arriving after the reveal.

    Must run before the new value is stored. A participant is flagged when
    it had no vote at reveal time or when it changes its vote; sending the
    same value again is not flagged. Returns True if the cheater set grew.
    """
    if not round.revealed:
        return False
    previous = round.votes.get(participant_id)
    if previous is not None and previous == value:
        return False
    if participant_id in round.cheaters:
        return False
    round.cheaters.add(participant_id)
    return True
