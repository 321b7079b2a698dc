"""状態機械のグラフ要素と実行コンテキスト

- グラフ要素: State（ノード）, Transition（辺）, Action（辺のトリガー）
- 実行コンテキスト: ActionExecution, TransitionIntent, TransitionExecution
  いずれも呼び出しごとに生成されるイミュータブルなスナップショットで、
  リスナーと述語に渡される。
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from enum import StrEnum
from typing import Any


class GateDecision(StrEnum):
    """述語ゲートの判定結果

    述語内で送出された例外は第3の結果（失敗）として呼び出し元に伝播する。
    """

    PROCEED = "proceed"  # ハンドラー実行へ進む
    REJECT = "reject"  # 何もせず終了（エラーではない）

    @classmethod
    def from_results(cls, results: Iterable[Any]) -> GateDecision:
        """述語の結果一覧から判定する（1つでも偽があれば REJECT）"""
        if all(results):
            return cls.PROCEED
        return cls.REJECT


class State:
    """状態機械内の有効な状態

    許可アクションは状態機械経由でのみ追加される。
    比較は同一性で行う（同名でも別インスタンスは別の状態）。
    """

    def __init__(self, name: str, allowed_actions: Iterable[Action] | None = None) -> None:
        self.name = name
        self._allowed_actions: list[Action] = list(allowed_actions or [])

    @property
    def allowed_actions(self) -> tuple[Action, ...]:
        """許可アクションのイミュータブルなスナップショット"""
        return tuple(self._allowed_actions)

    def is_action_allowed(self, action: Action) -> bool:
        """この状態でアクションが許可されているか"""
        return any(allowed is action for allowed in self._allowed_actions)

    def _add_action(self, action: Action) -> None:
        self._allowed_actions.append(action)

    def __repr__(self) -> str:
        return f"State(name={self.name!r})"

    def __str__(self) -> str:
        actions = "\n\t".join(action.name for action in self._allowed_actions)
        return f"State: {self.name}.\nAllowed actions:\n\t{actions}"


@dataclass(frozen=True, eq=False)
class Transition:
    """アクションの結果として起きる遷移の定義

    遷移元は持たず、遷移先のみを参照する。
    同じ Transition を複数のアクションで共有できる。
    """

    name: str
    target_state: State

    def __str__(self) -> str:
        return f"Transition: {self.name} -> {self.target_state.name}"


@dataclass(frozen=True, eq=False)
class Action:
    """アクションの定義

    transition が None のアクションは副作用のみで、状態を変えない。
    """

    name: str
    transition: Transition | None = None

    def __str__(self) -> str:
        text = f"Action: {self.name}"
        if self.transition is not None:
            text += f"\nTransitions to: {self.transition.name}"
        return text


@dataclass(frozen=True)
class ActionExecution:
    """アクション実行のスナップショット（述語・ハンドラーに渡される）"""

    action: Action
    from_state: State
    payload: Any = None

    def __str__(self) -> str:
        text = f"Execution of action: {self.action.name}\nfrom_state: {self.from_state.name}"
        if self.payload is not None:
            text += f"\npayload: {self.payload}"
        return text


@dataclass(frozen=True)
class TransitionIntent:
    """遷移しようとしている意図（状態変更前に遷移リスナーへ渡される）"""

    transition: Transition
    action: Action
    payload: Any = None

    def __str__(self) -> str:
        return (
            f"Intent: {self.transition.name} -> {self.transition.target_state.name} "
            f"(action: {self.action.name})"
        )


@dataclass(frozen=True)
class TransitionExecution:
    """どのアクションとペイロードがどの遷移を起こしたか"""

    action: Action
    from_state: State
    to_state: State
    payload: Any = None

    def __str__(self) -> str:
        text = (
            f"Transition: {self.from_state.name} -> {self.to_state.name}.\n"
            f"Caused by: {self.action.name}"
        )
        if self.payload is not None:
            text += f"\npayload: {self.payload}"
        return text
