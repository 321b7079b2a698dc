"""FSMForge - 非同期有限状態機械エンジン

状態・アクション・遷移を宣言し、アクションの呼び出しとリスナーによる
状態変化の観測で状態機械を駆動する。
"""

from .core import (
    Action,
    ActionExecution,
    FiniteStateMachine,
    FSMError,
    IllegalActionError,
    IllegalOperationError,
    ListenerRegistry,
    State,
    Transition,
    TransitionExecution,
    TransitionIntent,
)

__version__ = "0.1.0"

__all__ = [
    "FiniteStateMachine",
    "State",
    "Transition",
    "Action",
    "ActionExecution",
    "TransitionIntent",
    "TransitionExecution",
    "ListenerRegistry",
    "FSMError",
    "IllegalOperationError",
    "IllegalActionError",
]
