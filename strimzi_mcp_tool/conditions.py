"""Derive a resource's state from its status conditions.

Every list, describe and health tool goes through :func:`resolve_state` or
:func:`resolve_ready_state`, so a KafkaTopic reported "NotReady" by
``list_topics`` is reported the same way by ``health_check``.

Conditions are scanned in the order the API server returns them. The first
condition with ``status == "True"`` is the phase. Strimzi also publishes
``Warning`` conditions next to the phase (deprecated fields, for example);
those only win when nothing else is true.
"""

from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Sequence


STATUS_TRUE = "True"
STATUS_FALSE = "False"
STATUS_UNKNOWN = "Unknown"

STATE_READY = "Ready"
STATE_NOT_READY = "NotReady"
STATE_UNKNOWN = "Unknown"
CONDITION_WARNING = "Warning"

FAILURE_STATES = frozenset({STATE_NOT_READY, "Failed", "Error"})


@dataclass(frozen=True)
class Condition:
    type: str
    status: str
    reason: Optional[str] = None
    message: Optional[str] = None

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "Condition":
        return cls(
            type=str(raw.get("type") or ""),
            status=str(raw.get("status") or STATUS_UNKNOWN),
            reason=raw.get("reason") or None,
            message=raw.get("message") or None,
        )

    @property
    def detail(self) -> Optional[str]:
        return fold_detail(self.reason, self.message)


@dataclass(frozen=True)
class ResolvedState:
    label: str
    detail: Optional[str] = None

    def __str__(self) -> str:
        if self.detail:
            return f"{self.label} ({self.detail})"
        return self.label


def fold_detail(reason: Optional[str], message: Optional[str]) -> Optional[str]:
    if reason and message:
        return f"{reason}: {message}"
    return reason or message or None


def conditions_of(resource: Optional[Dict[str, Any]]) -> List[Condition]:
    """Extract the conditions of a raw custom resource dict.

    Entries that are not mappings are dropped rather than failing the caller.
    """
    status = (resource or {}).get("status") or {}
    raw_conditions = status.get("conditions") or []
    return [Condition.from_dict(c) for c in raw_conditions if isinstance(c, dict)]


def _as_conditions(conditions: Optional[Iterable[Any]]) -> List[Condition]:
    result: List[Condition] = []
    for c in conditions or []:
        if isinstance(c, Condition):
            result.append(c)
        elif isinstance(c, dict):
            result.append(Condition.from_dict(c))
    return result


def _first_true(conditions: Sequence[Condition]) -> Optional[Condition]:
    true_conditions = [c for c in conditions if c.status == STATUS_TRUE]
    if not true_conditions:
        return None
    phases = [c for c in true_conditions if c.type != CONDITION_WARNING]
    return (phases or true_conditions)[0]


def resolve_state(conditions: Optional[Iterable[Any]]) -> ResolvedState:
    """Resolve the phase of a resource from its conditions.

    Args:
        conditions: ``Condition`` objects or raw condition dicts, in API order.

    Returns:
        The first true condition's type and detail, or ``Unknown`` when the
        list is empty or nothing is true.
    """
    parsed = _as_conditions(conditions)
    phase = _first_true(parsed)
    if phase is None:
        return ResolvedState(STATE_UNKNOWN)
    return ResolvedState(phase.type, phase.detail)


def resolve_ready_state(conditions: Optional[Iterable[Any]]) -> ResolvedState:
    """Like :func:`resolve_state`, but explains why a resource is not ready.

    When no condition is true, a ``Ready`` condition with status ``False``
    resolves to ``NotReady`` and one with status ``Unknown`` to ``Unknown``,
    both carrying that condition's reason and message.
    """
    parsed = _as_conditions(conditions)
    if not parsed:
        return ResolvedState(STATE_UNKNOWN)
    phase = _first_true(parsed)
    if phase is not None:
        return ResolvedState(phase.type, phase.detail)
    ready = next((c for c in parsed if c.type == STATE_READY), None)
    if ready is not None and ready.status == STATUS_FALSE:
        return ResolvedState(STATE_NOT_READY, ready.detail)
    if ready is not None:
        return ResolvedState(STATE_UNKNOWN, ready.detail)
    return ResolvedState(STATE_UNKNOWN)


def resource_state(resource: Optional[Dict[str, Any]]) -> ResolvedState:
    return resolve_ready_state(conditions_of(resource))


def is_ready(state: ResolvedState) -> bool:
    return state.label == STATE_READY


def is_failure(state: ResolvedState) -> bool:
    return state.label in FAILURE_STATES


def format_conditions(conditions: Iterable[Condition]) -> List[Dict[str, Any]]:
    """Compact condition dicts for tool output."""
    return [
        {
            "type": c.type,
            "status": c.status,
            "reason": c.reason,
            "message": (c.message or "")[:200] or None,
        }
        for c in conditions
    ]
