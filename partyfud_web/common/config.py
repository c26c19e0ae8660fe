import os
from dataclasses import dataclass
from pathlib import Path
import json
from typing import Optional


DRAFT_CLEAR_POLICIES = {"always", "materialized"}


@dataclass
class AppConfig:
    database_url: str
    log_level: str
    api_base_url: str
    api_timeout: float
    currency: str
    draft_clear_policy: str



def validate_currency(value: Optional[str]) -> str:
    v = (value or "AED").strip().upper()
    if len(v) != 3:
        raise ValueError("Invalid currency code: expected ISO4217 length 3")
    return v


def validate_draft_clear_policy(value: Optional[str]) -> str:
    v = (value or "always").strip().lower()
    if v not in DRAFT_CLEAR_POLICIES:
        raise ValueError(f"Invalid draft clear policy: {value!r}")
    return v


def validate_timeout(value) -> float:
    try:
        v = float(value if value not in (None, "") else 30)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"Invalid API timeout: {value!r}") from exc
    if v <= 0:
        raise ValueError("API timeout must be > 0")
    return v


def _load_settings_file(path: Optional[Path]) -> dict:
    try:
        if path and path.exists():
            data = json.loads(path.read_text(encoding="utf-8"))
            if isinstance(data, dict):
                return data
    except Exception:
        pass
    return {}


def load_env(settings_file: Optional[Path] = None, default_database_url: str = "sqlite:///data/partyfud.db") -> AppConfig:
    # 設定以 settings.json 為主，環境變數為後備
    s = _load_settings_file(settings_file)
    database_url = s.get("DATABASE_URL") or os.getenv("DATABASE_URL") or default_database_url
    log_level = s.get("LOG_LEVEL") or os.getenv("LOG_LEVEL", "INFO")
    api_base_url = (s.get("API_BASE_URL") or os.getenv("API_BASE_URL") or "http://localhost:3000").rstrip("/")
    api_timeout = validate_timeout(s.get("API_TIMEOUT") or os.getenv("API_TIMEOUT"))
    currency = validate_currency(s.get("CURRENCY") or os.getenv("CURRENCY"))
    draft_clear_policy = validate_draft_clear_policy(s.get("DRAFT_CLEAR_POLICY") or os.getenv("DRAFT_CLEAR_POLICY"))
    return AppConfig(
        database_url=database_url,
        log_level=log_level,
        api_base_url=api_base_url,
        api_timeout=api_timeout,
        currency=currency,
        draft_clear_policy=draft_clear_policy,
    )
