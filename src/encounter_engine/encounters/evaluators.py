"""
Style and variety evaluators for candidate selections.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass
from typing import Sequence

from ..models import Candidate, Role, Style, StyleStatus, VarietyResult

# Hard ceiling on copies of one creature, independent of the variety preference
DUPLICATE_MAX = 2


@dataclass(frozen=True)
class StyleReport:
    """Result of matching a selection against a style."""
    status: StyleStatus
    matched: int = 0
    required: int = 0
    role: Role | None = None

    @property
    def satisfied(self) -> bool:
        return self.status in (StyleStatus.MATCHED, StyleStatus.NOT_APPLICABLE)


@dataclass(frozen=True)
class DuplicateReport:
    """Repeat statistics for a selection."""
    has_duplicates: bool
    max_repeat: int


def style_match(monsters: Sequence[Candidate], style: Style) -> StyleReport:
    """Evaluate how many members fill the role implied by the style.

    One match is required for a single-monster selection, two otherwise.
    """
    role = style.role
    if role is None:
        return StyleReport(status=StyleStatus.NOT_APPLICABLE)

    matched = sum(1 for m in monsters if m.role == role)
    required = 1 if len(monsters) == 1 else 2

    if matched >= required:
        status = StyleStatus.MATCHED
    elif matched >= 1:
        status = StyleStatus.PARTIAL
    else:
        status = StyleStatus.FELL_BACK
    return StyleReport(status=status, matched=matched, required=required, role=role)


def duplicate_report(monsters: Sequence[Candidate]) -> DuplicateReport:
    counts = Counter(m.identity for m in monsters)
    max_repeat = max(counts.values(), default=0)
    return DuplicateReport(has_duplicates=max_repeat > 1, max_repeat=max_repeat)


def variety_result(report: DuplicateReport, prefer_variety: bool) -> VarietyResult:
    """Readout label for the duplicate situation of a final encounter."""
    if not report.has_duplicates:
        return VarietyResult.NO_DUPLICATES
    if prefer_variety:
        return VarietyResult.DUPLICATES_LIMITED_POOL
    return VarietyResult.SOME_DUPLICATES


def role_counts(monsters: Sequence[Candidate]) -> dict[Role, int]:
    counts = {role: 0 for role in Role}
    for m in monsters:
        counts[m.role] += 1
    return counts
