"""活動資訊（日期、時間、場合、區域）的本地快取。"""

from __future__ import annotations

from dataclasses import dataclass, asdict
from typing import Optional

from ..common.services.logging import log_event
from ..common.services.storage import load_json, save_json


EVENT_DETAILS_STORAGE_KEY = "partyfud_event_details"


@dataclass
class EventDetails:
    """單一共用的活動資訊紀錄，與購物車項目分開保存。"""

    event_date: Optional[str] = None
    event_time: Optional[str] = None
    event_type: Optional[str] = None
    area: Optional[str] = None

    def has_any(self) -> bool:
        return any((self.event_date, self.event_time, self.event_type, self.area))

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> "EventDetails":
        def _text(key: str) -> Optional[str]:
            value = data.get(key)
            return str(value) if value not in (None, "") else None

        return cls(
            event_date=_text("event_date"),
            event_time=_text("event_time"),
            event_type=_text("event_type"),
            area=_text("area"),
        )


class EventDetailsStore:
    """提供活動資訊的存取；每次儲存都是整筆覆寫，不與舊值合併。"""

    def __init__(self, storage) -> None:
        self._storage = storage

    def save(self, details: EventDetails) -> bool:
        return save_json(self._storage, EVENT_DETAILS_STORAGE_KEY, details.to_dict())

    def get(self) -> EventDetails:
        """讀取活動資訊；資料不存在或損毀時回傳空白紀錄。"""
        data = load_json(self._storage, EVENT_DETAILS_STORAGE_KEY)
        if data is None:
            return EventDetails()
        if not isinstance(data, dict):
            log_event("warning", "storage.corrupt", key=EVENT_DETAILS_STORAGE_KEY, error="expected object")
            return EventDetails()
        return EventDetails.from_dict(data)

    def clear(self) -> None:
        self._storage.remove_item(EVENT_DETAILS_STORAGE_KEY)
