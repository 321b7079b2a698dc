"""FSMForge 設定管理モジュール

Pydantic Settingsを使用した型安全な設定管理。
fsmforge.config.yaml と環境変数から設定を読み込む。
"""

from pathlib import Path
from typing import Literal

import yaml
from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class EngineConfig(BaseModel):
    """状態機械エンジン設定"""

    warn_on_unknown_state: bool = Field(
        default=True, description="add_actionで未登録の状態を指定した時に警告ログを出すか"
    )
    history_size: int = Field(
        default=50, ge=0, le=10000, description="保持する遷移履歴の件数（0=保持しない）"
    )


class LoggingConfig(BaseModel):
    """ロギング設定"""

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(default="INFO")
    format: str = Field(default="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s")


class FSMForgeSettings(BaseSettings):
    """FSMForge全体設定

    設定の優先順位:
    1. 環境変数
    2. fsmforge.config.yaml
    3. デフォルト値
    """

    model_config = SettingsConfigDict(
        env_prefix="FSMFORGE_",
        env_nested_delimiter="__",
    )

    engine: EngineConfig = Field(default_factory=EngineConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @classmethod
    def from_yaml(cls, config_path: Path | str | None = None) -> "FSMForgeSettings":
        """YAMLファイルから設定を読み込む

        Args:
            config_path: 設定ファイルパス。Noneの場合はデフォルトパスを探索

        Returns:
            FSMForgeSettings インスタンス
        """
        if config_path is None:
            search_paths = [
                Path.cwd() / "fsmforge.config.yaml",
                Path.cwd() / "fsmforge.config.yml",
            ]
            for path in search_paths:
                if path.exists():
                    config_path = path
                    break

        if config_path and Path(config_path).exists():
            with open(config_path, encoding="utf-8") as f:
                yaml_config = yaml.safe_load(f) or {}
            return cls.model_validate(yaml_config)

        return cls()


# グローバル設定インスタンス（遅延初期化）
_settings: FSMForgeSettings | None = None


def get_settings() -> FSMForgeSettings:
    """設定シングルトンを取得"""
    global _settings
    if _settings is None:
        _settings = FSMForgeSettings.from_yaml()
    return _settings


def reload_settings(config_path: Path | str | None = None) -> FSMForgeSettings:
    """設定を再読み込み"""
    global _settings
    _settings = FSMForgeSettings.from_yaml(config_path)
    return _settings
