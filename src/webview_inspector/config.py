from __future__ import annotations

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

LOOPBACK_HOSTS = frozenset({"127.0.0.1", "localhost", "::1"})


class BridgeSettings(BaseSettings):
    # HTTP bridge
    host: str = "127.0.0.1"
    port: int = 9999
    app_name: str = "webview-app"
    log_level: str = "info"

    # Relay
    eval_timeout: float = 10.0
    channel_capacity: int = 32

    # DOM projection budgets
    default_max_depth: int = 10
    default_max_nodes: int = 500
    max_text_length: int = 200

    model_config = SettingsConfigDict(
        env_prefix="INSPECTOR_", env_file=".env", extra="ignore"
    )

    @field_validator("host")
    @classmethod
    def _loopback_only(cls, value: str) -> str:
        if value not in LOOPBACK_HOSTS:
            raise ValueError(
                f"Bridge must bind to a loopback interface, got {value!r}"
            )
        return value

    @field_validator("eval_timeout")
    @classmethod
    def _positive_timeout(cls, value: float) -> float:
        if value <= 0:
            raise ValueError("eval_timeout must be positive")
        return value

    @field_validator("channel_capacity", "default_max_depth", "default_max_nodes")
    @classmethod
    def _positive_int(cls, value: int) -> int:
        if value < 1:
            raise ValueError("must be at least 1")
        return value
