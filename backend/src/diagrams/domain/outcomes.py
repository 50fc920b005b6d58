from dataclasses import dataclass

from diagrams.domain.entities import Diagram


@dataclass(frozen=True)
class Committed:
    version: int
    diagram: Diagram


@dataclass(frozen=True)
class Conflicted:
    """The stored version differed from the expected one.

    ``current`` is the stored diagram, returned untouched so the caller can
    reconcile without another round-trip.
    """

    current: Diagram


@dataclass(frozen=True)
class InSync:
    version: int


MutationOutcome = Committed | Conflicted
SyncOutcome = InSync | Conflicted
