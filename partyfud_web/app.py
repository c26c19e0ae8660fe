"""Partyfud 前台本地購物車 Flask 應用。"""

from __future__ import annotations

from typing import Optional

from flask import Flask, has_request_context, request

from .common.config import AppConfig, load_env
from .common.db.session import create_storage_engine, make_session_factory
from .common.services.api_client import PartyfudApiClient
from .common.services.logging import set_log_level
from .common.services.storage import SqlStorage
from .config import WebConfig
from .routes import cart
from .services import (
    CartStorage,
    CartSyncService,
    CustomPackageStorage,
    EventDetailsStore,
)


def _bearer_token_from_request() -> Optional[str]:
    """轉送呼叫端的 Authorization 標頭，本應用不保存權杖。"""
    if not has_request_context():
        return None
    header = request.headers.get("Authorization", "")
    if header.lower().startswith("bearer "):
        return header[7:].strip() or None
    return None


def create_app(
    web_config: Optional[WebConfig] = None,
    app_config: Optional[AppConfig] = None,
    storage=None,
    api_client=None,
) -> Flask:
    web_config = web_config or WebConfig.load()
    app_config = app_config or load_env(web_config.settings_file, web_config.default_database_url)
    set_log_level(app_config.log_level)

    app = Flask(__name__)
    app.config["SECRET_KEY"] = web_config.secret_key
    app.config["PARTYFUD_WEB_CONFIG"] = web_config
    app.config["PARTYFUD_APP_CONFIG"] = app_config

    if storage is None:
        engine = create_storage_engine(app_config.database_url)
        storage = SqlStorage(make_session_factory(engine))
    if api_client is None:
        api_client = PartyfudApiClient(
            app_config.api_base_url,
            timeout=app_config.api_timeout,
            token_provider=_bearer_token_from_request,
        )

    event_details = EventDetailsStore(storage)
    cart_storage = CartStorage(storage, event_details)
    custom_packages = CustomPackageStorage(storage)
    components = {
        "storage": storage,
        "event_details": event_details,
        "cart_storage": cart_storage,
        "custom_packages": custom_packages,
        "api_client": api_client,
        "cart_sync": CartSyncService(
            cart_storage,
            custom_packages,
            event_details,
            api_client,
            draft_clear_policy=app_config.draft_clear_policy,
        ),
    }
    app.extensions["partyfud_components"] = components

    app.register_blueprint(cart.api_bp)

    return app


def main() -> None:
    app = create_app()
    app.run(host="127.0.0.1", port=6055, debug=False)


if __name__ == "__main__":
    main()
