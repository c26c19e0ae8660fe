"""自組套餐（尚未在遠端建立）的暫存模組。"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Iterable, List, Optional
from uuid import uuid4

from ..common.services.logging import log_event
from ..common.services.storage import load_json, save_json


CUSTOM_PACKAGES_STORAGE_KEY = "partyfud_custom_packages"
STAGING_ID_PREFIX = "custom_"


def is_staging_id(package_id: str) -> bool:
    """判斷套餐識別碼是否為本地暫存識別碼。"""
    return str(package_id or "").startswith(STAGING_ID_PREFIX)


@dataclass
class CustomPackageDraft:
    """使用者自組的套餐草稿，建立後不可修改。"""

    id: str
    dish_ids: List[str]
    people_count: int
    name: Optional[str] = None
    created_at: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "dish_ids": list(self.dish_ids),
            "people_count": self.people_count,
            "name": self.name,
            "created_at": self.created_at,
        }


def _unique_dish_ids(dish_ids: Iterable[str]) -> List[str]:
    seen = []
    for dish_id in dish_ids or []:
        value = str(dish_id).strip()
        if value and value not in seen:
            seen.append(value)
    return seen


class CustomPackageStorage:
    """自組套餐草稿的存取介面；只能整批讀取與清除。"""

    def __init__(self, storage) -> None:
        self._storage = storage

    def list_packages(self) -> List[CustomPackageDraft]:
        data = load_json(self._storage, CUSTOM_PACKAGES_STORAGE_KEY)
        if data is None:
            return []
        if not isinstance(data, list):
            log_event("warning", "storage.corrupt", key=CUSTOM_PACKAGES_STORAGE_KEY, error="expected array")
            return []
        drafts: List[CustomPackageDraft] = []
        for entry in data:
            try:
                drafts.append(
                    CustomPackageDraft(
                        id=str(entry["id"]),
                        dish_ids=[str(d) for d in entry["dish_ids"]],
                        people_count=int(entry["people_count"]),
                        name=entry.get("name") or None,
                        created_at=str(entry.get("created_at") or ""),
                    )
                )
            except (KeyError, TypeError, ValueError, AttributeError) as exc:
                log_event("warning", "storage.corrupt", key=CUSTOM_PACKAGES_STORAGE_KEY, error=f"skipped draft: {exc}")
        return drafts

    def add_package(self, dish_ids: Iterable[str], people_count: int, name: Optional[str] = None) -> CustomPackageDraft:
        """新增草稿並回傳，識別碼以 ``custom_`` 開頭。"""
        dishes = _unique_dish_ids(dish_ids)
        if not dishes:
            raise ValueError("dish_ids must not be empty")
        count = int(people_count)
        if count <= 0:
            raise ValueError("people_count must be > 0")
        draft = CustomPackageDraft(
            id=f"{STAGING_ID_PREFIX}{uuid4().hex}",
            dish_ids=dishes,
            people_count=count,
            name=(name or "").strip() or None,
        )
        drafts = self.list_packages()
        drafts.append(draft)
        self._write(drafts)
        return draft

    def discard(self, draft_ids: Iterable[str]) -> None:
        """移除已在遠端建立的草稿，其餘保留供下次同步。"""
        consumed = set(draft_ids)
        remaining = [d for d in self.list_packages() if d.id not in consumed]
        if remaining:
            self._write(remaining)
        else:
            self.clear()

    def clear(self) -> None:
        self._storage.remove_item(CUSTOM_PACKAGES_STORAGE_KEY)

    def _write(self, drafts: List[CustomPackageDraft]) -> bool:
        return save_json(self._storage, CUSTOM_PACKAGES_STORAGE_KEY, [d.to_dict() for d in drafts])
