"""リスナーレジストリ

単一のイベント種別に対するコールバックを順序付きで保持する汎用 pub/sub。
条件付き購読（フィルタ）、解除、結果を収集する一括通知をサポートする。
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

T = TypeVar("T")
R = TypeVar("R")

# 値 T を受け取り結果 R を返すリスナー
ValueListener = Callable[[T], R]


@dataclass(frozen=True)
class _Registration(Generic[T, R]):
    """登録エントリ

    key は登録時に渡された元のコールバック。解除時の照合に使う。
    """

    key: Callable[..., Any]
    listener: Callable[[T], R | None]
    predicate: Callable[[T], bool] | None = None


class ListenerRegistry(Generic[T, R]):
    """特定の値型 T に対するリスナーを管理する

    全リスナーの結果を収集したい場合は R を None 以外の型にし、
    notify_listeners の戻り値を受け取る。
    コールバックが awaitable を返した場合、このクラスは起動するだけで待機しない。
    """

    def __init__(self) -> None:
        self._registrations: list[_Registration[T, R]] = []

    def __len__(self) -> int:
        return len(self._registrations)

    def __contains__(self, listener: object) -> bool:
        return any(reg.key == listener for reg in self._registrations)

    def add_listener(self, listener: ValueListener[T, R]) -> None:
        """無条件リスナーを追加

        値の内容に応じて呼び分けたい場合は listen_if を使う。
        """
        self._registrations.append(_Registration(key=listener, listener=listener))

    def listen_if(self, listener: ValueListener[T, R], predicate: Callable[[T], bool]) -> None:
        """predicate を満たす値に対してのみ呼ばれるリスナーを追加

        解除は add_listener と同じく remove_listener に元のリスナーを渡す。
        """

        def handle_value(value: T) -> R | None:
            if predicate(value):
                return listener(value)
            return None

        self._registrations.append(
            _Registration(key=listener, listener=handle_value, predicate=predicate)
        )

    def remove_listener(self, listener: Callable[..., Any]) -> None:
        """直接・条件付きのどちらで登録されたリスナーも解除する（未登録なら何もしない）"""
        self._registrations = [reg for reg in self._registrations if reg.key != listener]

    def notify_listeners(
        self, value: T, on_result: Callable[[R], Any] | None = None
    ) -> list[Any]:
        """全リスナーに値を通知し、None 以外の結果を登録順に返す

        Args:
            value: 通知する値
            on_result: 各結果を受け取った直後に適用する変換。後続のリスナーが
                例外を送出しても、それ以前の結果には適用済みとなる

        Returns:
            結果（on_result 指定時は変換後の値）の一覧
        """
        results: list[Any] = []
        # 通知中の登録・解除が走査に影響しないようスナップショットを取る
        for reg in list(self._registrations):
            result = reg.listener(value)
            if result is None:
                continue
            results.append(on_result(result) if on_result is not None else result)
        return results

    def dispose(self) -> None:
        """全リスナーを破棄（以後も再利用可能）"""
        self._registrations.clear()
