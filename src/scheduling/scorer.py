"""Feasibility scorer: reduces a violation list to green / amber / red.

* green: no violations
* red:   any CRITICAL violation (SLA breach, operator conflict)
* amber: anything else

Reads only the severity tag on each violation, never its message.
"""

from __future__ import annotations

from collections.abc import Iterable

from src.models.common import FeasibilityScore
from src.scheduling.models import Violation, ViolationSeverity

# Severities that cannot be fixed by re-picking a time on the same route.
_RED_SEVERITIES = frozenset({ViolationSeverity.CRITICAL})


class FeasibilityScorer:
    """Tri-state verdict over a violation list."""

    def score(self, violations: Iterable[Violation]) -> FeasibilityScore:
        violations = list(violations)
        if not violations:
            return FeasibilityScore.GREEN
        if any(v.severity in _RED_SEVERITIES for v in violations):
            return FeasibilityScore.RED
        return FeasibilityScore.AMBER
