"""Per-item enrichment outcomes and the run report.

Every enrichment stage answers each item with either ``Resolved(value)`` or
``Unresolved(reason)``. Unresolved items become null fields in the output
tables and an ``ItemFailure`` entry in the ``EnrichmentReport``; they are
never raised.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import asdict, dataclass, field
from typing import Any, Generic, TypeVar

T = TypeVar("T")


@dataclass(frozen=True)
class Resolved(Generic[T]):
    """Successful outcome carrying its value and the strategy that produced it."""

    value: T
    source: str | None = None


@dataclass(frozen=True)
class Unresolved:
    """Failed outcome; ``reason`` is human-readable and stable enough to grep."""

    reason: str


Outcome = Resolved[T] | Unresolved


@dataclass(frozen=True)
class ItemFailure:
    """One unresolved item, with enough context for a targeted re-run."""

    stage: str
    key: str
    reason: str
    index: int | None = None


@dataclass
class EnrichmentReport:
    """Collects unresolved items across all stages of a run."""

    failures: list[ItemFailure] = field(default_factory=list)
    attempted: Counter[str] = field(default_factory=Counter)

    def record(self, stage: str, key: str, reason: str, index: int | None = None) -> None:
        self.failures.append(ItemFailure(stage=stage, key=key, reason=reason, index=index))

    def attempt(self, stage: str, count: int = 1) -> None:
        self.attempted[stage] += count

    def for_stage(self, stage: str) -> list[ItemFailure]:
        return [f for f in self.failures if f.stage == stage]

    def unresolved_counts(self) -> dict[str, int]:
        """Number of unresolved items per stage (stages with none are omitted)."""
        return dict(Counter(f.stage for f in self.failures))

    def summary(self) -> str:
        """One line per stage: ``stage: unresolved/attempted``."""
        counts = self.unresolved_counts()
        stages = sorted(set(self.attempted) | set(counts))
        return "\n".join(
            f"{stage}: {counts.get(stage, 0)} unresolved of {self.attempted.get(stage, 0)}"
            for stage in stages
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "unresolved_counts": self.unresolved_counts(),
            "attempted": dict(self.attempted),
            "failures": [asdict(f) for f in self.failures],
        }
