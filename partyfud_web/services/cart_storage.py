"""購物車項目的本地儲存模組。

項目只存在本機，登入或結帳時才由 :class:`CartSyncService` 推送到遠端。
同一個 ``package_id`` 只會有一筆項目，重複加入會覆寫既有項目。
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from decimal import Decimal, ROUND_HALF_UP
from typing import Callable, Dict, List, Optional
from uuid import uuid4

from ..common.services.logging import log_event
from ..common.services.storage import load_json, save_json
from .event_details import EventDetails, EventDetailsStore


CART_STORAGE_KEY = "partyfud_cart_items"
LOCAL_ITEM_PREFIX = "local_"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _optional_text(value) -> Optional[str]:
    return str(value) if value not in (None, "") else None


@dataclass
class CatererRef:
    """套餐所屬外燴商的顯示資料。"""

    id: str = ""
    business_name: Optional[str] = None
    name: Optional[str] = None

    def to_dict(self) -> Dict[str, Optional[str]]:
        return {"id": self.id, "business_name": self.business_name, "name": self.name}


@dataclass
class PackageSnapshot:
    """加入購物車當下的套餐顯示資料，僅作為顯示快取。"""

    id: str
    name: str
    people_count: int
    total_price: float
    price_per_person: float
    currency: str
    cover_image_url: Optional[str] = None
    caterer: CatererRef = field(default_factory=CatererRef)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "people_count": self.people_count,
            "total_price": self.total_price,
            "price_per_person": self.price_per_person,
            "currency": self.currency,
            "cover_image_url": self.cover_image_url,
            "caterer": self.caterer.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "PackageSnapshot":
        caterer = data.get("caterer")
        if not isinstance(caterer, dict):
            caterer = {}
        people_count = int(data.get("people_count") or 1)
        total_price = float(data.get("total_price") or 0)
        price_per_person = data.get("price_per_person")
        if price_per_person in (None, ""):
            price_per_person = total_price / (people_count or 1)
        return cls(
            id=str(data["id"]),
            name=str(data.get("name", "")),
            people_count=people_count,
            total_price=total_price,
            price_per_person=float(price_per_person),
            currency=str(data.get("currency") or ""),
            cover_image_url=_optional_text(data.get("cover_image_url")),
            caterer=CatererRef(
                id=str(caterer.get("id") or ""),
                business_name=_optional_text(caterer.get("business_name")),
                name=_optional_text(caterer.get("name")),
            ),
        )


@dataclass
class CartLineItem:
    """購物車中的單一套餐項目。"""

    id: str
    package_id: str
    package: PackageSnapshot
    guests: int
    price_at_time: float
    created_at: str
    updated_at: str
    event_date: Optional[str] = None
    event_time: Optional[str] = None
    event_type: Optional[str] = None
    area: Optional[str] = None

    @property
    def event_details(self) -> EventDetails:
        return EventDetails(
            event_date=self.event_date,
            event_time=self.event_time,
            event_type=self.event_type,
            area=self.area,
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "package_id": self.package_id,
            "package": self.package.to_dict(),
            "guests": self.guests,
            "price_at_time": self.price_at_time,
            "event_date": self.event_date,
            "event_time": self.event_time,
            "event_type": self.event_type,
            "area": self.area,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "CartLineItem":
        return cls(
            id=str(data["id"]),
            package_id=str(data["package_id"]),
            package=PackageSnapshot.from_dict(data["package"]),
            guests=int(data["guests"]),
            price_at_time=float(data["price_at_time"]),
            created_at=str(data["created_at"]),
            updated_at=str(data["updated_at"]),
            event_date=_optional_text(data.get("event_date")),
            event_time=_optional_text(data.get("event_time")),
            event_type=_optional_text(data.get("event_type")),
            area=_optional_text(data.get("area")),
        )


def price_for_guests(package: PackageSnapshot, guests: int) -> float:
    """以每人單價乘以人數計算價格，四捨五入到整數。"""
    per_person = package.price_per_person or (package.total_price / (package.people_count or 1))
    amount = (Decimal(str(per_person)) * Decimal(int(guests))).quantize(Decimal("1"), rounding=ROUND_HALF_UP)
    return float(amount)


def _validate_guests(guests) -> int:
    value = int(guests)
    if value <= 0:
        raise ValueError("guests must be > 0")
    return value


def _validate_price(price_at_time) -> float:
    value = float(price_at_time)
    if value < 0:
        raise ValueError("price_at_time must be >= 0")
    return value


def new_local_item_id() -> str:
    return f"{LOCAL_ITEM_PREFIX}{int(time.time() * 1000)}_{uuid4().hex[:9]}"


class CartStorage:
    """本地購物車存取介面；每次異動都整批寫回儲存區。"""

    def __init__(
        self,
        storage,
        event_details: EventDetailsStore,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._storage = storage
        self._event_details = event_details
        self._clock = clock

    def list_items(self) -> List[CartLineItem]:
        """讀取全部項目；資料不存在或損毀時視為空購物車。"""
        data = load_json(self._storage, CART_STORAGE_KEY)
        if data is None:
            return []
        if not isinstance(data, list):
            log_event("warning", "storage.corrupt", key=CART_STORAGE_KEY, error="expected array")
            return []
        items: List[CartLineItem] = []
        for entry in data:
            try:
                items.append(CartLineItem.from_dict(entry))
            except (KeyError, TypeError, ValueError, AttributeError) as exc:
                log_event("warning", "storage.corrupt", key=CART_STORAGE_KEY, error=f"skipped item: {exc}")
        return items

    def get_item(self, item_id: str) -> Optional[CartLineItem]:
        for item in self.list_items():
            if item.id == item_id:
                return item
        return None

    def add_item(
        self,
        *,
        package_id: str,
        package: PackageSnapshot,
        guests: int,
        price_at_time: float,
        event_date: Optional[str] = None,
        event_time: Optional[str] = None,
        event_type: Optional[str] = None,
        area: Optional[str] = None,
    ) -> CartLineItem:
        """加入套餐；同一套餐已存在時改寫人數、價格與活動資訊。"""
        if not package_id:
            raise ValueError("package_id required")
        guests = _validate_guests(guests)
        price_at_time = _validate_price(price_at_time)
        details = EventDetails(
            event_date=_optional_text(event_date),
            event_time=_optional_text(event_time),
            event_type=_optional_text(event_type),
            area=_optional_text(area),
        )

        items = self.list_items()
        existing = next((it for it in items if it.package_id == package_id), None)
        if existing:
            existing.guests = guests
            existing.price_at_time = price_at_time
            existing.event_date = details.event_date
            existing.event_time = details.event_time
            existing.event_type = details.event_type
            existing.area = details.area
            existing.updated_at = self._touch(existing.updated_at)
            item = existing
            log_event("info", "cart.item_merged", item_id=item.id, package_id=package_id, guests=guests)
        else:
            now = self._clock().isoformat()
            item = CartLineItem(
                id=new_local_item_id(),
                package_id=package_id,
                package=package,
                guests=guests,
                price_at_time=price_at_time,
                created_at=now,
                updated_at=now,
                event_date=details.event_date,
                event_time=details.event_time,
                event_type=details.event_type,
                area=details.area,
            )
            items.append(item)
            log_event("info", "cart.item_added", item_id=item.id, package_id=package_id, guests=guests)

        self._write(items)
        self._event_details.save(details)
        return item

    def update_guests(self, item_id: str, guests: int, price_at_time: float) -> Optional[CartLineItem]:
        """更新指定項目的人數與價格，找不到時回傳 None。"""
        items = self.list_items()
        for item in items:
            if item.id == item_id:
                guests = _validate_guests(guests)
                price_at_time = _validate_price(price_at_time)
                item.guests = guests
                item.price_at_time = price_at_time
                item.updated_at = self._touch(item.updated_at)
                self._write(items)
                return item
        return None

    def remove_item(self, item_id: str) -> bool:
        items = self.list_items()
        remaining = [it for it in items if it.id != item_id]
        if len(remaining) == len(items):
            return False
        self._write(remaining)
        return True

    def replace_items(self, items: List[CartLineItem]) -> bool:
        return self._write(items)

    def clear(self) -> bool:
        return self._storage.remove_item(CART_STORAGE_KEY)

    def get_cart(self, default_currency: str = "AED") -> Dict:
        items = self.list_items()
        subtotal = sum((Decimal(str(it.price_at_time)) for it in items), Decimal("0"))
        currency = (items[0].package.currency or default_currency) if items else default_currency
        return {
            "items": [it.to_dict() for it in items],
            "count": len(items),
            "subtotal": float(subtotal),
            "currency": currency,
        }

    def _touch(self, previous: str) -> str:
        # updated_at 必須嚴格晚於前一次時間戳
        now = self._clock()
        if now.tzinfo is None:
            now = now.replace(tzinfo=timezone.utc)
        try:
            prev = datetime.fromisoformat(previous)
        except (TypeError, ValueError):
            return now.isoformat()
        if prev.tzinfo is None:
            prev = prev.replace(tzinfo=timezone.utc)
        if now <= prev:
            now = prev + timedelta(microseconds=1)
        return now.isoformat()

    def _write(self, items: List[CartLineItem]) -> bool:
        return save_json(self._storage, CART_STORAGE_KEY, [it.to_dict() for it in items])
