"""状態機械 (Finite State Machine)

状態・アクション・遷移のグラフを保持し、アクション呼び出しのパイプライン
（述語ゲート → ハンドラー → 遷移リスナー → 退出 → 状態確定 → 進入）を実行する。
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from collections import deque
from collections.abc import Awaitable, Callable, Iterable
from enum import StrEnum
from typing import Any, TypeVar

from ..config import EngineConfig, get_settings
from ..listeners import ListenerRegistry
from .models import (
    Action,
    ActionExecution,
    GateDecision,
    State,
    Transition,
    TransitionExecution,
    TransitionIntent,
)

logger = logging.getLogger(__name__)

_T = TypeVar("_T")

# コールバックの型（同期・非同期どちらも可）
StateListener = Callable[[State], None]
TransitionListener = Callable[[TransitionExecution], Awaitable[None] | None]
ActionPredicate = Callable[[ActionExecution], Awaitable[bool] | bool]
ActionHandler = Callable[[ActionExecution], Awaitable[None] | None]
IntentListener = Callable[[TransitionIntent], Awaitable[None] | None]


class FSMError(Exception):
    """状態機械エラーの基底クラス"""

    pass


class IllegalOperationError(FSMError):
    """宣言・ライフサイクルの誤用"""

    pass


class IllegalActionError(FSMError):
    """現在の状態で許可されていないアクションの呼び出し"""

    def __init__(self, state: State, action: Action):
        self.state = state
        self.action = action
        super().__init__(
            f"Illegal action: {action.name!r} is not allowed in state {state.name!r}. "
            f"Allowed actions: {[a.name for a in state.allowed_actions]}"
        )


class MachinePhase(StrEnum):
    """状態機械自体のライフサイクル"""

    UNSTARTED = "unstarted"  # 宣言フェーズ
    STARTED = "started"  # 稼働中
    DISPOSED = "disposed"  # 破棄済み


async def _resolve(value: Awaitable[_T] | _T) -> _T:
    if inspect.isawaitable(value):
        return await value
    return value


def _start(result: Any) -> Any:
    # 後続のコールバックが例外を送出しても起動済みの処理は実行される
    if inspect.isawaitable(result):
        return asyncio.ensure_future(result)
    return result


async def _fan_out(listeners: ListenerRegistry[_T, Any], value: _T) -> list[Any]:
    """全リスナーを登録順に起動し、全ての完了を待ち合わせる

    awaitable は返された時点でタスク化され並行に進む。完了順は保証しない。
    None に解決された結果は同期・非同期を問わず除外する。
    """
    started = listeners.notify_listeners(value, on_result=_start)
    if not started:
        return []
    resolved = await asyncio.gather(*(_resolve(result) for result in started))
    return [result for result in resolved if result is not None]


class FiniteStateMachine:
    """有限状態機械

    各 State は許可された Action の集合を持ち、各 Action は任意で Transition を持つ。
    Transition は「ある状態へ移る」という行為のみを表す。

    ライフサイクル:
    - UNSTARTED: add_state / add_action を受け付ける
    - STARTED: add_state は拒否、add_action / call_action / current を受け付ける
    - DISPOSED: 全リスナー破棄済み、以後の操作は拒否
    """

    def __init__(self, config: EngineConfig | None = None):
        self.config = config or get_settings().engine
        self._states: dict[str, State] = {}
        self._current: State | None = None
        self._disposed = False
        self._history: deque[TransitionExecution] = deque(maxlen=self.config.history_size)

        self._state_listeners: ListenerRegistry[State, None] = ListenerRegistry()
        self._enter_state_listeners: ListenerRegistry[TransitionExecution, Any] = (
            ListenerRegistry()
        )
        self._exit_state_listeners: ListenerRegistry[TransitionExecution, Any] = (
            ListenerRegistry()
        )
        self._action_predicates: ListenerRegistry[ActionExecution, Any] = ListenerRegistry()
        self._action_handlers: ListenerRegistry[ActionExecution, Any] = ListenerRegistry()
        self._transition_listeners: ListenerRegistry[TransitionIntent, Any] = ListenerRegistry()

        self._listeners: list[ListenerRegistry[Any, Any]] = [
            self._state_listeners,
            self._enter_state_listeners,
            self._exit_state_listeners,
            self._action_predicates,
            self._action_handlers,
            self._transition_listeners,
        ]

    # -------------------------------------------------------------------------
    # ライフサイクル
    # -------------------------------------------------------------------------

    @property
    def phase(self) -> MachinePhase:
        if self._disposed:
            return MachinePhase.DISPOSED
        if self._current is None:
            return MachinePhase.UNSTARTED
        return MachinePhase.STARTED

    @property
    def is_started(self) -> bool:
        return self._current is not None

    @property
    def current(self) -> State:
        """現在の状態

        Raises:
            IllegalOperationError: 開始前に参照した場合
        """
        if self._current is None:
            raise IllegalOperationError(
                "Cannot get the current state of a state machine that has not started"
            )
        return self._current

    def start(self, initial_state: State) -> None:
        """状態機械を開始する

        以後、状態の追加はできない。

        Raises:
            IllegalOperationError: 開始済み・破棄済み、または未登録の状態を指定した場合
        """
        self._ensure_not_disposed()
        if self._current is not None:
            raise IllegalOperationError("Cannot start an already started state machine")
        if not self._contains(initial_state):
            raise IllegalOperationError(
                f"Cannot start from a state that is not part of this machine: {initial_state.name}"
            )
        logger.debug(f"状態機械を開始: {initial_state.name}")
        self._set_state(initial_state)

    def dispose(self) -> None:
        """全リスナーを破棄する"""
        for listeners in self._listeners:
            listeners.dispose()
        self._disposed = True

    def _ensure_not_disposed(self) -> None:
        if self._disposed:
            raise IllegalOperationError("Cannot use a disposed state machine")

    def _set_state(self, state: State) -> None:
        # 現在状態を書き換える唯一の箇所
        self._current = state
        self._state_listeners.notify_listeners(state)

    # -------------------------------------------------------------------------
    # 宣言
    # -------------------------------------------------------------------------

    @property
    def states(self) -> tuple[State, ...]:
        """登録済みの状態一覧（宣言順）"""
        return tuple(self._states.values())

    def get_state(self, name: str) -> State | None:
        """名前から登録済みの状態を取得"""
        return self._states.get(name)

    def _contains(self, state: State) -> bool:
        return self._states.get(state.name) is state

    def add_state(self, name: str) -> State:
        """状態を追加する

        Raises:
            IllegalOperationError: 開始後、または同名の状態が既に存在する場合
        """
        self._ensure_not_disposed()
        if self._current is not None:
            raise IllegalOperationError("Cannot add states to an already started state machine")
        if name in self._states:
            raise IllegalOperationError(f"State already exists with this name: {name}")

        state = State(name)
        self._states[name] = state
        return state

    def add_action(self, states: Iterable[State], action: Action) -> None:
        """指定した状態群にアクションを追加する

        未登録の状態は無視される（一括登録のため）。

        Raises:
            IllegalOperationError: 遷移先が未登録の状態である場合
        """
        self._ensure_not_disposed()
        if action.transition is not None and not self._contains(action.transition.target_state):
            raise IllegalOperationError(
                "You cannot define a transition to an unknown state: "
                f"{action.transition.target_state.name}"
            )
        for state in states:
            if not self._contains(state):
                if self.config.warn_on_unknown_state:
                    logger.warning(
                        f"未登録の状態へのアクション追加をスキップ: {state.name} <- {action.name}"
                    )
                continue
            state._add_action(action)

    def add_blanket_action(self, action: Action) -> None:
        """現在登録済みの全状態にアクションを追加する

        この呼び出しの後に add_state した状態には追加されない。
        """
        self.add_action(list(self._states.values()), action)

    def get_allowed_actions(self, state: State) -> tuple[Action, ...]:
        """状態で許可されたアクションのスナップショット（未登録なら空）"""
        if not self._contains(state):
            return ()
        return state.allowed_actions

    # -------------------------------------------------------------------------
    # 実行
    # -------------------------------------------------------------------------

    async def call_action(self, action: Action, payload: Any = None) -> None:
        """アクションを呼び出す

        述語が1つでも False を返した場合は何もせずに終了する（エラーではない）。
        コールバックが送出した例外はそのまま呼び出し元に伝播する。

        Raises:
            IllegalOperationError: 開始前・破棄後に呼び出した場合
            IllegalActionError: 現在の状態でアクションが許可されていない場合
        """
        self._ensure_not_disposed()
        state = self.current
        if not state.is_action_allowed(action):
            raise IllegalActionError(state=state, action=action)

        execution = ActionExecution(action=action, from_state=state, payload=payload)

        target_state = await self._execute_action(execution)
        if target_state is None:
            return

        # 遷移リスナーの待機中に他の呼び出しが状態を変えていたら破棄
        if self._current is not state:
            logger.debug(
                f"状態が変化したため遷移を破棄: {action.name} "
                f"({state.name} -> {target_state.name})"
            )
            return

        transition = TransitionExecution(
            action=action,
            from_state=state,
            to_state=target_state,
            payload=payload,
        )

        await _fan_out(self._exit_state_listeners, transition)
        self._set_state(target_state)
        self._history.append(transition)
        logger.debug(f"状態遷移: {state.name} -> {target_state.name} ({action.name})")
        await _fan_out(self._enter_state_listeners, transition)

    async def _execute_action(self, execution: ActionExecution) -> State | None:
        """述語ゲート・ハンドラー・遷移リスナーを順に実行し、遷移先を返す"""
        results = await _fan_out(self._action_predicates, execution)
        if GateDecision.from_results(results) is GateDecision.REJECT:
            logger.debug(f"述語によりアクションを中止: {execution.action.name}")
            return None

        await _fan_out(self._action_handlers, execution)

        transition = execution.action.transition
        if transition is None:
            return None

        return await self._execute_transition(transition, execution)

    async def _execute_transition(
        self, transition: Transition, execution: ActionExecution
    ) -> State:
        intent = TransitionIntent(
            transition=transition,
            action=execution.action,
            payload=execution.payload,
        )
        await _fan_out(self._transition_listeners, intent)
        return transition.target_state

    def get_recent_transitions(self, limit: int | None = None) -> list[TransitionExecution]:
        """確定した遷移の履歴を古い順に取得"""
        history = list(self._history)
        if limit is None:
            return history
        return history[-limit:] if limit > 0 else []

    # -------------------------------------------------------------------------
    # 購読
    # -------------------------------------------------------------------------

    def on_state_changed(self, on_state_changed: StateListener, state: State | None = None) -> None:
        """状態が変わった時に呼ばれるリスナーを追加

        呼び出し時点で current はその状態を返す。
        """
        self._ensure_not_disposed()
        if state is None:
            self._state_listeners.add_listener(on_state_changed)
            return

        self._state_listeners.listen_if(on_state_changed, lambda s: s.name == state.name)

    def on_enter_state(
        self, on_enter_state: TransitionListener, state: State | None = None
    ) -> None:
        """遷移で状態に入った時に呼ばれるリスナーを追加"""
        self._ensure_not_disposed()
        if state is None:
            self._enter_state_listeners.add_listener(on_enter_state)
            return

        self._enter_state_listeners.listen_if(
            on_enter_state, lambda transition: transition.to_state.name == state.name
        )

    def on_exit_state(self, on_exit_state: TransitionListener, state: State | None = None) -> None:
        """遷移で状態を出る時に呼ばれるリスナーを追加"""
        self._ensure_not_disposed()
        if state is None:
            self._exit_state_listeners.add_listener(on_exit_state)
            return

        self._exit_state_listeners.listen_if(
            on_exit_state, lambda transition: transition.from_state.name == state.name
        )

    def add_action_predicate(self, on_action: ActionPredicate, action: Action | None = None) -> None:
        """アクション開始前に実行され、アクションを中止できる述語を追加

        全ての述語は並行に実行され、完了順は保証されない。
        """
        self._ensure_not_disposed()
        if action is None:
            self._action_predicates.add_listener(on_action)
            return

        self._action_predicates.listen_if(
            on_action, lambda execution: execution.action.name == action.name
        )

    def on_action(self, on_action: ActionHandler, action: Action | None = None) -> None:
        """述語ゲート通過後に実行されるハンドラーを追加

        awaitable を返すハンドラーは互いに並行して待機され、
        全て完了してから遷移が行われる。
        """
        self._ensure_not_disposed()
        if action is None:
            self._action_handlers.add_listener(on_action)
            return

        self._action_handlers.listen_if(
            on_action, lambda execution: execution.action.name == action.name
        )

    def on_transition(
        self, on_transition: IntentListener, transition: Transition | None = None
    ) -> None:
        """遷移の直前（状態確定前）に呼ばれるリスナーを追加"""
        self._ensure_not_disposed()
        if transition is None:
            self._transition_listeners.add_listener(on_transition)
            return

        self._transition_listeners.listen_if(
            on_transition, lambda intent: intent.transition.name == transition.name
        )

    def remove_listener(self, listener: Callable[..., Any]) -> None:
        """リスナーを解除する

        登録時と異なり、どのイベント種別に登録したかを指定する必要はない。
        """
        for listeners in self._listeners:
            listeners.remove_listener(listener)

    def remove_listeners(self, listeners: Iterable[Callable[..., Any]]) -> None:
        """複数のリスナーをまとめて解除する"""
        for listener in listeners:
            self.remove_listener(listener)
