"""Edge-triggered transition detection against persisted prior state."""

from dataclasses import dataclass
from enum import Enum

from agent_health.monitor.staleness import Classification
from agent_health.shared.logger import get_agent_logger
from agent_health.shared.state import StateStore


class IncidentKind(Enum):
    WARNING = "warning"
    CRITICAL = "critical"
    RECOVERED = "recovered"

    @property
    def emoji(self) -> str:
        return INCIDENT_EMOJI[self]

    @property
    def label(self) -> str:
        return self.value.capitalize()

    @property
    def degraded(self) -> bool:
        return self is not IncidentKind.RECOVERED


INCIDENT_EMOJI = {
    IncidentKind.WARNING: "🟡",
    IncidentKind.CRITICAL: "🔴",
    IncidentKind.RECOVERED: "🟢",
}


@dataclass
class TransitionEvent:
    agent: str
    kind: IncidentKind
    previous: Classification
    current: Classification

    def to_dict(self) -> dict:
        return {
            "agent": self.agent,
            "kind": self.kind.value,
            "previous": self.previous.value,
            "current": self.current.value,
        }


def detect_transition(prior: Classification, current: Classification) -> IncidentKind | None:
    """Return the incident a prior -> current move produces, if any.

    Only entering a degraded state from healthy/unknown and returning to
    healthy from a degraded state count. Warning <-> Critical moves and any
    move into Unknown produce nothing.
    """
    if current.degraded and prior in (Classification.HEALTHY, Classification.UNKNOWN):
        return IncidentKind(current.value)
    if current is Classification.HEALTHY and prior.degraded:
        return IncidentKind.RECOVERED
    return None


def state_key(agent: str) -> str:
    return f"{agent}.state"


class TransitionDetector:
    """Compare each agent's classification with the previous cycle's."""

    def __init__(self, store: StateStore):
        self._store = store
        self.logger = get_agent_logger("transitions")

    def prior(self, agent: str) -> Classification:
        raw = self._store.get(state_key(agent))
        if raw is None:
            return Classification.UNKNOWN
        try:
            return Classification(raw.strip().lower())
        except ValueError:
            self.logger.warning(f"Ignoring unreadable prior state for {agent}: {raw!r}")
            return Classification.UNKNOWN

    def evaluate(self, agent: str, current: Classification, dry_run: bool = False) -> TransitionEvent | None:
        """Detect this agent's transition and remember ``current`` for next time.

        In dry-run mode nothing is persisted.
        """
        previous = self.prior(agent)
        kind = detect_transition(previous, current)
        if not dry_run:
            self._store.set(state_key(agent), current.value)
        if kind is None:
            return None
        return TransitionEvent(agent=agent, kind=kind, previous=previous, current=current)
