"""Events emitted by samplers for consumption by trajectory visualizers."""

from collections import deque, namedtuple


class ProposalEvent(
        namedtuple('ProposalEvent', ['proposal', 'trajectory', 'init_mom'])):
    """Proposed trajectory endpoint with the trajectory and initial momentum.

    Attributes:
        proposal (array): Position at the trajectory end.
        trajectory (List[array]): Positions visited, start and end included.
        init_mom (array): Momentum sampled at the trajectory start.
    """

    __slots__ = ()
    type = 'proposal'


class DecisionEvent(namedtuple('DecisionEvent', ['type', 'proposal'])):
    """Outcome of the acceptance decision for a proposal.

    Attributes:
        type (str): Either `'accept'` or `'reject'`.
        proposal (array): Proposed position the decision was made for.
    """

    __slots__ = ()

    @property
    def accepted(self):
        return self.type == 'accept'


class EventQueue(object):
    """Append-only first-in first-out queue of sampler events.

    Each sampler step pushes one `ProposalEvent` immediately followed by one
    `DecisionEvent`. Consumers remove events with `drain`.
    """

    def __init__(self, maxlen=None):
        """
        Args:
            maxlen (None or int): If not `None`, maximum number of events
                retained, with the oldest events discarded first.
        """
        self._events = deque(maxlen=maxlen)

    def push(self, event):
        self._events.append(event)

    def drain(self):
        """Remove and return all queued events in order."""
        events = list(self._events)
        self._events.clear()
        return events

    def __len__(self):
        return len(self._events)

    def __iter__(self):
        return iter(self._events)
