#!/usr/bin/env python3
"""自動販売機の状態機械サンプル

状態の宣言、述語による実行可否の判定、ハンドラー、
遷移リスナーの購読と解除を一通り動かす。

使い方:
  python scripts/vending_machine.py
"""

import asyncio
import logging
import os
import sys

# srcをパスに追加
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

from fsmforge.core import (
    Action,
    ActionExecution,
    FiniteStateMachine,
    LoggingConfig,
    Transition,
    TransitionIntent,
    configure_logging,
)

logger = logging.getLogger("fsmforge.examples.vending")


async def main() -> None:
    configure_logging(LoggingConfig(level="DEBUG"))

    machine = FiniteStateMachine()

    # 状態
    ready = machine.add_state("ready")
    vending = machine.add_state("vending")

    # 遷移
    to_vending = Transition(name="to_vending", target_state=vending)
    to_ready = Transition(name="to_ready", target_state=ready)

    # アクション
    insert_coin = Action(name="insert coin", transition=to_vending)
    take_item = Action(name="take item", transition=to_ready)
    shake = Action(name="shake")

    machine.add_action([ready], insert_coin)
    machine.add_action([vending], take_item)
    machine.add_blanket_action(shake)

    machine.start(ready)

    def print_transition(intent: TransitionIntent) -> None:
        logger.info(f"遷移: {intent}")

    async def dispense(execution: ActionExecution) -> None:
        await asyncio.sleep(0.1)
        logger.info(f"商品を払い出し: {execution.payload}")

    machine.on_transition(print_transition)
    machine.on_action(dispense, action=insert_coin)

    # 文字列のペイロードのみ受け付ける
    machine.add_action_predicate(
        lambda execution: isinstance(execution.payload, str),
        action=insert_coin,
    )

    await machine.call_action(insert_coin, 100)
    logger.info(f"数値のコインは拒否: current={machine.current.name}")

    await machine.call_action(insert_coin, "cola")
    await machine.call_action(shake)
    await machine.call_action(take_item)

    machine.remove_listener(print_transition)

    for record in machine.get_recent_transitions():
        logger.info(f"履歴: {record.from_state.name} -> {record.to_state.name}")

    machine.dispose()


if __name__ == "__main__":
    asyncio.run(main())
