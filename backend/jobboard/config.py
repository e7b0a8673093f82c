from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path

import yaml
from pydantic import BaseModel, Field, model_validator

# Версия из кода (config.yaml НЕ в git!)
APP_VERSION = "0.4.2"


class AppConfig(BaseModel):
    name: str = "Remote Jobs"
    version: str = APP_VERSION
    debug: bool = False


class AuthConfig(BaseModel):
    token: str


class DatabaseConfig(BaseModel):
    host: str = "localhost"
    port: int = 5432
    name: str = "jobboard"
    user: str = "jobboard"
    password: str = ""
    pool_min: int = 1
    pool_max: int = 10
    connect_timeout_sec: float = 5.0


class BackendConfig(BaseModel):
    host: str = "0.0.0.0"
    port: int = 8000


class AccessConfig(BaseModel):
    lan_subnets: list[str] = ["127.0.0.0/8"]
    trusted_proxy_ips: list[str] = ["127.0.0.1"]


class ViewsConfig(BaseModel):
    """Учёт просмотров вакансий: лимиты и cookie viewer_id."""

    window_sec: float = Field(3600, gt=0)
    max_requests: int = Field(10, ge=0)
    # None = раз в window_sec
    sweep_interval_sec: float | None = Field(None, gt=0)
    persist_timeout_sec: float = Field(5.0, gt=0)
    cookie_name: str = "viewer_id"
    cookie_max_age_sec: int = 60 * 60 * 24 * 365
    cookie_secure: bool = True
    max_user_agent_len: int = 512

    @model_validator(mode="after")
    def _default_sweep_interval(self) -> ViewsConfig:
        if self.sweep_interval_sec is None:
            self.sweep_interval_sec = self.window_sec
        return self


class Settings(BaseModel):
    app: AppConfig = AppConfig()
    auth: AuthConfig
    database: DatabaseConfig = DatabaseConfig()
    backend: BackendConfig = BackendConfig()
    access: AccessConfig = AccessConfig()
    views: ViewsConfig = ViewsConfig()


def _find_config_path() -> Path:
    env = os.environ.get("JOBBOARD_CONFIG_PATH")
    if env:
        return Path(env)
    return Path(__file__).resolve().parent.parent.parent / "config.yaml"


@lru_cache
def get_settings() -> Settings:
    path = _find_config_path()
    with open(path, encoding="utf-8") as f:
        data = yaml.safe_load(f)
    return Settings(**(data or {}))
