from .policy import PolicyDecision, decide_initial_status, check_refunds_allowed, can_approve_refund
from .transitions import (
    ALLOWED_TRANSITIONS,
    TransitionPlan,
    can_transition,
    allowed_next_statuses,
    plan_transition,
)

__all__ = [
    "PolicyDecision",
    "decide_initial_status",
    "check_refunds_allowed",
    "can_approve_refund",
    "ALLOWED_TRANSITIONS",
    "TransitionPlan",
    "can_transition",
    "allowed_next_statuses",
    "plan_transition",
]
