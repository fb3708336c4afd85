import random
from typing import Iterable, List, Optional

from estimation.models import RevealSlot


class RevealScheduler:
    """Shuffled, staggered flip order for a reveal.

    The order is computed once on the server and sent verbatim to every
    client, so all observers flip the same cards at the same moments.
    """

    def __init__(self, step_ms: int = 200, jitter_ms: int = 100, rng: Optional[random.Random] = None):
        self.step_ms = step_ms
        self.jitter_ms = jitter_ms
        self._rng = rng or random.Random()

    def shuffle(self, participant_ids: Iterable[str]) -> List[str]:
        order = list(participant_ids)
        # Fisher-Yates
        for i in range(len(order) - 1, 0, -1):
            j = self._rng.randint(0, i)
            order[i], order[j] = order[j], order[i]
        return order

    def schedule(self, participant_ids: Iterable[str]) -> List[RevealSlot]:
        slots = []
        for index, participant_id in enumerate(self.shuffle(participant_ids)):
            jitter = self._rng.randrange(self.jitter_ms) if self.jitter_ms > 0 else 0
            slots.append(RevealSlot(participant_id, index * self.step_ms + jitter))
        return slots
