"""FSMForge Core モジュール

状態機械エンジンのバックエンドロジックを提供:
- Listeners: 汎用リスナーレジストリ
- State: グラフ要素・実行コンテキスト・状態機械
- Definition: 辞書/YAMLからの宣言的な組み立て
- Config: 設定管理
"""

from .config import EngineConfig, FSMForgeSettings, LoggingConfig, get_settings, reload_settings
from .definition import (
    BuiltMachine,
    DefinitionError,
    MachineDefinition,
    build_machine,
    load_definition,
    parse_definition,
)
from .listeners import ListenerRegistry
from .logging import configure_logging
from .state import (
    Action,
    ActionExecution,
    FiniteStateMachine,
    FSMError,
    GateDecision,
    IllegalActionError,
    IllegalOperationError,
    MachinePhase,
    State,
    Transition,
    TransitionExecution,
    TransitionIntent,
)

__all__ = [
    # Config
    "get_settings",
    "reload_settings",
    "FSMForgeSettings",
    "EngineConfig",
    "LoggingConfig",
    "configure_logging",
    # Listeners
    "ListenerRegistry",
    # State
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
    # Definition
    "MachineDefinition",
    "BuiltMachine",
    "DefinitionError",
    "parse_definition",
    "load_definition",
    "build_machine",
]
