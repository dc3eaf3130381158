# Business Logic Services
from alertroute.services.dispatch import (
    DispatchEngine,
    DispatchResult,
    build_dispatch_engine,
)
from alertroute.services.escalation import EscalationOutcome, EscalationScheduler
from alertroute.services.responder_directory import (
    RankedResponder,
    find_nearest,
    rank_responders,
)

__all__ = [
    "DispatchEngine",
    "DispatchResult",
    "EscalationOutcome",
    "EscalationScheduler",
    "RankedResponder",
    "build_dispatch_engine",
    "find_nearest",
    "rank_responders",
]
