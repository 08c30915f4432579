"""Handoff scheduling engine.

Builds, validates, and cascades pickup -> hub -> delivery schedules,
scores their feasibility, and flags edge cases that need a human
(expiring hub holds, operator conflicts, high-value approvals).

Deterministic and stateless apart from the approval gate register.
"""
