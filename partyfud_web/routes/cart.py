"""本地購物車、活動資訊與自組套餐的 JSON API 路由。"""

from __future__ import annotations

from typing import Any, Dict

from flask import Blueprint, current_app, jsonify, request

from ..services.cart_storage import PackageSnapshot, price_for_guests
from ..services.event_details import EventDetails


api_bp = Blueprint("partyfud_cart_api", __name__, url_prefix="/api")


def _components() -> Dict[str, Any]:
    return current_app.extensions["partyfud_components"]


def _currency() -> str:
    return current_app.config["PARTYFUD_APP_CONFIG"].currency


def _event_fields(payload: dict) -> Dict[str, Any]:
    return {
        "event_date": payload.get("event_date"),
        "event_time": payload.get("event_time"),
        "event_type": payload.get("event_type"),
        "area": payload.get("area"),
    }


@api_bp.get("/cart")
def get_cart():
    components = _components()
    cart = components["cart_storage"].get_cart(default_currency=_currency())
    cart["event_details"] = components["event_details"].get().to_dict()
    return jsonify(cart)


@api_bp.post("/cart/items")
def add_cart_item():
    payload = request.get_json(silent=True) or {}
    package_data = payload.get("package")
    if not isinstance(package_data, dict):
        return jsonify({"error": "請提供套餐資料。"}), 400
    package_id = str(payload.get("package_id") or package_data.get("id") or "").strip()
    if not package_id:
        return jsonify({"error": "請提供套餐識別碼。"}), 400

    try:
        package = PackageSnapshot.from_dict({**package_data, "id": package_id})
        raw_guests = payload.get("guests")
        guests = int(package.people_count if raw_guests is None else raw_guests)
        price_at_time = payload.get("price_at_time")
        if price_at_time is None:
            price_at_time = price_for_guests(package, guests)
        item = _components()["cart_storage"].add_item(
            package_id=package_id,
            package=package,
            guests=guests,
            price_at_time=price_at_time,
            **_event_fields(payload),
        )
    except (TypeError, ValueError) as exc:
        return jsonify({"error": str(exc)}), 400

    return jsonify({"status": "added", "item": item.to_dict()}), 201


@api_bp.patch("/cart/items/<item_id>")
def update_cart_item(item_id: str):
    payload = request.get_json(silent=True) or {}
    cart_storage = _components()["cart_storage"]
    current = cart_storage.get_item(item_id)
    if current is None:
        return jsonify({"error": "找不到購物車項目。"}), 404

    try:
        guests = int(payload.get("guests"))
        price_at_time = payload.get("price_at_time")
        if price_at_time is None:
            price_at_time = price_for_guests(current.package, guests)
        item = cart_storage.update_guests(item_id, guests, price_at_time)
    except (TypeError, ValueError) as exc:
        return jsonify({"error": str(exc)}), 400

    if item is None:
        return jsonify({"error": "找不到購物車項目。"}), 404
    return jsonify({"status": "updated", "item": item.to_dict()})


@api_bp.delete("/cart/items/<item_id>")
def remove_cart_item(item_id: str):
    removed = _components()["cart_storage"].remove_item(item_id)
    return jsonify({"status": "ok", "removed": removed})


@api_bp.delete("/cart")
def clear_cart():
    _components()["cart_storage"].clear()
    return jsonify({"status": "ok"})


@api_bp.get("/cart/event-details")
def get_event_details():
    return jsonify(_components()["event_details"].get().to_dict())


@api_bp.put("/cart/event-details")
def save_event_details():
    payload = request.get_json(silent=True) or {}
    details = EventDetails.from_dict(_event_fields(payload))
    _components()["event_details"].save(details)
    return jsonify(details.to_dict())


@api_bp.delete("/cart/event-details")
def clear_event_details():
    _components()["event_details"].clear()
    return jsonify({"status": "ok"})


@api_bp.get("/custom-packages")
def list_custom_packages():
    drafts = _components()["custom_packages"].list_packages()
    return jsonify({"packages": [d.to_dict() for d in drafts]})


@api_bp.post("/custom-packages")
def create_custom_package():
    payload = request.get_json(silent=True) or {}
    dish_ids = payload.get("dish_ids")
    if not isinstance(dish_ids, list):
        return jsonify({"error": "請至少選擇一道菜色。"}), 400
    try:
        draft = _components()["custom_packages"].add_package(
            dish_ids,
            payload.get("people_count"),
            name=payload.get("name"),
        )
    except (TypeError, ValueError) as exc:
        return jsonify({"error": str(exc)}), 400
    return jsonify({"status": "staged", "package": draft.to_dict()}), 201


@api_bp.post("/cart/sync")
def sync_cart():
    report = _components()["cart_sync"].sync()
    return jsonify(report.to_dict())
