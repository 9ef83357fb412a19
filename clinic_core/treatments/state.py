# clinic_core/treatments/state.py
"""
Treatment plan transition table and status derivation. Pure functions, no ORM access.
"""
from __future__ import annotations

from types import MappingProxyType
from typing import Iterable, Mapping

from clinic_core.treatments.models import TreatmentItemStatus as I
from clinic_core.treatments.models import TreatmentPlanStatus as P

PLAN_TRANSITIONS: Mapping[str, frozenset] = MappingProxyType({
    P.DRAFT: frozenset({P.PROPOSED, P.CANCELLED}),
    P.PROPOSED: frozenset({P.ACCEPTED, P.CANCELLED, P.DRAFT}),
    P.ACCEPTED: frozenset({P.IN_PROGRESS, P.CANCELLED}),
    P.IN_PROGRESS: frozenset({P.COMPLETED, P.CANCELLED}),
    P.COMPLETED: frozenset(),
    P.CANCELLED: frozenset({P.DRAFT}),
})

# Plans that no longer accept new items.
CLOSED_PLAN_STATUSES = frozenset({P.COMPLETED, P.CANCELLED})

# Item statuses that count as finished when deriving plan completion.
FINISHED_ITEM_STATUSES = frozenset({I.COMPLETED, I.CANCELLED})

# Item statuses that mean work has started.
ACTIVE_ITEM_STATUSES = frozenset({I.IN_PROGRESS, I.COMPLETED})

# Only plans in motion follow their items. DRAFT and PROPOSED plans are not
# approved yet, so finishing their items leaves them where they are.
DERIVING_PLAN_STATUSES = frozenset({P.ACCEPTED, P.IN_PROGRESS})


def allowed_targets(current: str) -> frozenset:
    return PLAN_TRANSITIONS.get(current, frozenset())


def can_transition(current: str, target: str) -> bool:
    return target in allowed_targets(current)


def status_after_item_added(current: str) -> str:
    if current == P.ACCEPTED:
        return P.IN_PROGRESS
    return current


def derive_plan_status(current: str, item_statuses: Iterable[str]) -> str:
    """
    Plan status implied by its items, given the plan's current status.

    Every item finished -> COMPLETED; any item started while ACCEPTED -> IN_PROGRESS.
    Plans outside ACCEPTED/IN_PROGRESS are left untouched.
    """
    if current not in DERIVING_PLAN_STATUSES:
        return current

    statuses = list(item_statuses)
    if not statuses:
        return current

    if all(s in FINISHED_ITEM_STATUSES for s in statuses):
        return P.COMPLETED
    if current == P.ACCEPTED and any(s in ACTIVE_ITEM_STATUSES for s in statuses):
        return P.IN_PROGRESS
    return current
