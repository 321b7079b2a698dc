"""宣言的な状態機械定義

辞書またはYAMLファイルから状態・遷移・アクションを読み込み、
FiniteStateMachine を組み立てる。

YAML例:

    states: [locked, open]
    initial: locked
    transitions:
      - {name: unlocking, target: open}
      - {name: locking, target: locked}
    actions:
      - {name: open with key, transition: unlocking, states: [locked]}
      - {name: lock with key, transition: locking, states: [open]}
      - {name: knock, states: "*"}
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator

from .config import EngineConfig
from .state.machines import FiniteStateMachine, FSMError
from .state.models import Action, State, Transition

logger = logging.getLogger(__name__)

# 全状態への一括登録を表す指定
BLANKET = "*"


class DefinitionError(FSMError):
    """状態機械定義の不正"""

    pass


class TransitionDefinition(BaseModel):
    """遷移の定義"""

    model_config = {"frozen": True, "extra": "forbid"}

    name: str = Field(..., min_length=1, description="遷移名")
    target: str = Field(..., min_length=1, description="遷移先の状態名")


class ActionDefinition(BaseModel):
    """アクションの定義"""

    model_config = {"frozen": True, "extra": "forbid"}

    name: str = Field(..., min_length=1, description="アクション名")
    transition: str | None = Field(default=None, description="遷移名（Noneなら副作用のみ）")
    states: list[str] | Literal["*"] = Field(
        default_factory=list, description="許可する状態名の一覧、または全状態を表す '*'"
    )


class MachineDefinition(BaseModel):
    """状態機械全体の定義"""

    model_config = {"frozen": True, "extra": "forbid"}

    states: list[str] = Field(..., min_length=1, description="状態名の一覧（宣言順）")
    initial: str | None = Field(default=None, description="初期状態名")
    transitions: list[TransitionDefinition] = Field(default_factory=list)
    actions: list[ActionDefinition] = Field(default_factory=list)

    @field_validator("states")
    @classmethod
    def _unique_states(cls, states: list[str]) -> list[str]:
        duplicates = sorted({s for s in states if states.count(s) > 1})
        if duplicates:
            raise ValueError(f"duplicate state names: {duplicates}")
        return states

    @model_validator(mode="after")
    def _check_references(self) -> MachineDefinition:
        known_states = set(self.states)
        if self.initial is not None and self.initial not in known_states:
            raise ValueError(f"unknown initial state: {self.initial}")

        transition_names: set[str] = set()
        for transition in self.transitions:
            if transition.name in transition_names:
                raise ValueError(f"duplicate transition name: {transition.name}")
            if transition.target not in known_states:
                raise ValueError(
                    f"transition {transition.name!r} targets unknown state: {transition.target}"
                )
            transition_names.add(transition.name)

        action_names: set[str] = set()
        for action in self.actions:
            if action.name in action_names:
                raise ValueError(f"duplicate action name: {action.name}")
            if action.transition is not None and action.transition not in transition_names:
                raise ValueError(
                    f"action {action.name!r} references unknown transition: {action.transition}"
                )
            if action.states != BLANKET:
                unknown = [name for name in action.states if name not in known_states]
                if unknown:
                    raise ValueError(
                        f"action {action.name!r} is attached to unknown states: {unknown}"
                    )
            action_names.add(action.name)
        return self


@dataclass
class BuiltMachine:
    """組み立て済みの状態機械と、名前から要素を引くための辞書"""

    machine: FiniteStateMachine
    states: dict[str, State] = field(default_factory=dict)
    transitions: dict[str, Transition] = field(default_factory=dict)
    actions: dict[str, Action] = field(default_factory=dict)


def parse_definition(data: dict[str, Any]) -> MachineDefinition:
    """辞書から定義を検証して読み込む

    Raises:
        DefinitionError: 定義が不正な場合
    """
    try:
        return MachineDefinition.model_validate(data)
    except ValidationError as e:
        raise DefinitionError(f"Invalid state machine definition: {e}") from e


def load_definition(path: Path | str) -> MachineDefinition:
    """YAMLファイルから定義を読み込む

    Raises:
        DefinitionError: ファイルが存在しない、またはYAML/定義が不正な場合
    """
    path = Path(path)
    if not path.exists():
        raise DefinitionError(f"Definition file not found: {path}")

    try:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise DefinitionError(f"Invalid YAML in {path}: {e}") from e

    if not isinstance(data, dict):
        raise DefinitionError(f"Definition root must be a mapping: {path}")
    return parse_definition(data)


def build_machine(
    definition: MachineDefinition,
    config: EngineConfig | None = None,
    start: bool = True,
) -> BuiltMachine:
    """定義から状態機械を組み立てる

    Args:
        definition: 検証済みの定義
        config: エンジン設定（Noneならグローバル設定）
        start: initial が指定されていれば開始するか

    Returns:
        BuiltMachine
    """
    built = BuiltMachine(machine=FiniteStateMachine(config))

    for name in definition.states:
        built.states[name] = built.machine.add_state(name)

    for t in definition.transitions:
        built.transitions[t.name] = Transition(name=t.name, target_state=built.states[t.target])

    for a in definition.actions:
        transition = built.transitions[a.transition] if a.transition is not None else None
        action = Action(name=a.name, transition=transition)
        built.actions[a.name] = action

        if a.states == BLANKET:
            built.machine.add_blanket_action(action)
            continue
        built.machine.add_action([built.states[name] for name in a.states], action)

    if start and definition.initial is not None:
        built.machine.start(built.states[definition.initial])

    logger.debug(
        f"状態機械を構築: states={len(built.states)} "
        f"transitions={len(built.transitions)} actions={len(built.actions)}"
    )
    return built
