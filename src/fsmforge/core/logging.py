"""ロギング設定ヘルパー

ライブラリ自身はハンドラーを設定しない。
ホストプログラムが必要に応じて configure_logging を呼び出す。
"""

from __future__ import annotations

import logging

from .config import LoggingConfig, get_settings

ROOT_LOGGER_NAME = "fsmforge"


def configure_logging(config: LoggingConfig | None = None) -> logging.Logger:
    """fsmforge ロガーに LoggingConfig を適用する

    Args:
        config: ロギング設定。Noneの場合はグローバル設定を使用

    Returns:
        設定済みの fsmforge ロガー
    """
    config = config or get_settings().logging
    level = getattr(logging, config.level, logging.INFO)

    logger = logging.getLogger(ROOT_LOGGER_NAME)
    logger.setLevel(level)

    # 再設定時にハンドラーが重複しないよう差し替える
    for handler in list(logger.handlers):
        logger.removeHandler(handler)

    handler = logging.StreamHandler()
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(fmt=config.format, datefmt="%Y-%m-%d %H:%M:%S"))
    logger.addHandler(handler)
    return logger
