"""FSMForge テスト設定"""

from dataclasses import dataclass

import pytest

from fsmforge.core import config as config_module
from fsmforge.core.config import EngineConfig, FSMForgeSettings
from fsmforge.core.state import Action, FiniteStateMachine, State, Transition


@pytest.fixture(autouse=True)
def default_settings(monkeypatch):
    """カレントディレクトリ等の設定ファイルに影響されないデフォルト設定"""
    settings = FSMForgeSettings()
    monkeypatch.setattr(config_module, "_settings", settings)
    return settings


@dataclass
class Door:
    """施錠できる扉の状態機械

    locked --(open with key / unlocking)--> open
    open --(lock with key / locking)--> locked
    open: look inside, place item（遷移なし）
    """

    machine: FiniteStateMachine
    locked: State
    open: State
    unlocking: Transition
    locking: Transition
    open_with_key: Action
    lock_with_key: Action
    look_inside: Action
    place_item: Action


def build_door(start: bool = True, config: EngineConfig | None = None) -> Door:
    machine = FiniteStateMachine(config or EngineConfig())
    locked = machine.add_state("locked")
    open_ = machine.add_state("open")

    locking = Transition(name="locking", target_state=locked)
    unlocking = Transition(name="unlocking", target_state=open_)

    open_with_key = Action(name="open with key", transition=unlocking)
    lock_with_key = Action(name="lock with key", transition=locking)
    look_inside = Action(name="look inside")
    place_item = Action(name="place item")

    machine.add_action([locked], open_with_key)
    machine.add_action([open_], lock_with_key)
    machine.add_action([open_], look_inside)
    machine.add_action([open_], place_item)

    if start:
        machine.start(locked)

    return Door(
        machine=machine,
        locked=locked,
        open=open_,
        unlocking=unlocking,
        locking=locking,
        open_with_key=open_with_key,
        lock_with_key=lock_with_key,
        look_inside=look_inside,
        place_item=place_item,
    )


@pytest.fixture
def door_factory():
    """設定を変えて扉の状態機械を組み立てるためのファクトリ"""
    return build_door


@pytest.fixture
def door():
    """開始済みの扉の状態機械"""
    d = build_door()
    yield d
    d.machine.dispose()


@pytest.fixture
def unstarted_door():
    """未開始の扉の状態機械"""
    d = build_door(start=False)
    yield d
    d.machine.dispose()
