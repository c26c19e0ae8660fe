"""Partyfud 前台應用設定模組。"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional


@dataclass
class WebConfig:
    """封裝前台應用的路徑與密鑰設定。"""

    secret_key: str
    app_root: Path
    data_root: Path

    @property
    def data_dir(self) -> Path:
        return self.data_root

    @property
    def settings_file(self) -> Path:
        return self.data_dir / "settings.json"

    @property
    def default_database_url(self) -> str:
        return f"sqlite:///{(self.data_dir / 'partyfud.db').as_posix()}"

    @classmethod
    def load(cls, data_dir: Optional[Path] = None) -> "WebConfig":
        """從環境變數建構設定，並確保資料目錄與預設設定檔存在。"""

        app_root = Path(__file__).resolve().parent
        data_root = Path(data_dir or os.environ.get("PARTYFUD_DATA_DIR") or app_root / "data")

        config = cls(
            secret_key=os.environ.get("PARTYFUD_SECRET_KEY", "partyfud-local-cart"),
            app_root=app_root,
            data_root=data_root,
        )
        config.data_dir.mkdir(parents=True, exist_ok=True)

        # 設定檔不存在時寫入預設值，環境變數仍可作為後備
        if not config.settings_file.exists():
            default_settings = {
                "API_BASE_URL": "",
                "API_TIMEOUT": "30",
                "CURRENCY": "AED",
                "LOG_LEVEL": "INFO",
                "DRAFT_CLEAR_POLICY": "always",
            }
            config.settings_file.write_text(
                json.dumps(default_settings, indent=2, ensure_ascii=False),
                encoding="utf-8",
            )

        return config
