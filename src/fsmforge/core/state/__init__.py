"""状態機械モジュール"""

from .machines import (
    FiniteStateMachine,
    FSMError,
    IllegalActionError,
    IllegalOperationError,
    MachinePhase,
)
from .models import (
    Action,
    ActionExecution,
    GateDecision,
    State,
    Transition,
    TransitionExecution,
    TransitionIntent,
)

__all__ = [
    "FiniteStateMachine",
    "MachinePhase",
    "State",
    "Transition",
    "Action",
    "ActionExecution",
    "TransitionIntent",
    "TransitionExecution",
    "GateDecision",
    "FSMError",
    "IllegalOperationError",
    "IllegalActionError",
]
