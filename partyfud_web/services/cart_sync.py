"""本地購物車與遠端 API 的同步流程。

同步依序進行：先把自組套餐草稿建立成遠端套餐，再逐筆送出購物車項目，
最後只移除遠端確認成功的項目，失敗的項目原樣留在本機等待下一次同步。
整個流程不會拋出例外，呼叫端以回傳的 :class:`SyncReport` 或本機剩餘
項目判斷是否有部分失敗。
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Dict, List

from ..common.services.logging import log_event
from ..common.utils.result import ApiResult, Err, ErrorKind
from .cart_storage import CartLineItem, CartStorage
from .custom_package_storage import CustomPackageStorage, is_staging_id
from .event_details import EventDetailsStore


@dataclass
class SyncReport:
    """單次同步的結果摘要。"""

    synced_item_ids: List[str] = field(default_factory=list)
    failed_item_ids: List[str] = field(default_factory=list)
    skipped_item_ids: List[str] = field(default_factory=list)
    failed_draft_ids: List[str] = field(default_factory=list)
    package_map: Dict[str, str] = field(default_factory=dict)
    remote_calls: int = 0
    storage_write_failed: bool = False

    @property
    def completed(self) -> bool:
        return not self.failed_item_ids and not self.skipped_item_ids and not self.storage_write_failed

    def to_dict(self) -> dict:
        return {
            "completed": self.completed,
            "synced_item_ids": list(self.synced_item_ids),
            "failed_item_ids": list(self.failed_item_ids),
            "skipped_item_ids": list(self.skipped_item_ids),
            "failed_draft_ids": list(self.failed_draft_ids),
            "package_map": dict(self.package_map),
            "remote_calls": self.remote_calls,
            "storage_write_failed": self.storage_write_failed,
        }


class CartSyncService:
    """把本地暫存的購物車狀態推送到遠端。"""

    def __init__(
        self,
        cart_storage: CartStorage,
        custom_packages: CustomPackageStorage,
        event_details: EventDetailsStore,
        api_client,
        draft_clear_policy: str = "always",
    ) -> None:
        self._cart = cart_storage
        self._drafts = custom_packages
        self._event_details = event_details
        self._api = api_client
        self._draft_clear_policy = draft_clear_policy

    def sync(self) -> SyncReport:
        report = SyncReport()
        items = self._cart.list_items()
        if not items:
            return report

        self._materialize_drafts(report)

        synced = set()
        for item in items:
            package_id = self._resolve_package_id(item, report.package_map)
            if package_id is None:
                report.skipped_item_ids.append(item.id)
                log_event("warning", "sync.item_skipped", item_id=item.id, package_id=item.package_id)
                continue
            report.remote_calls += 1
            result = self._guarded(
                lambda: self._api.create_cart_item(
                    package_id=package_id,
                    guests=item.guests,
                    price_at_time=item.price_at_time,
                    date=item.event_date,
                    event_time=item.event_time,
                    event_type=item.event_type,
                    area=item.area,
                )
            )
            if result.ok:
                synced.add(item.id)
                report.synced_item_ids.append(item.id)
            else:
                report.failed_item_ids.append(item.id)
                log_event("error", "sync.item_failed", item_id=item.id, package_id=package_id, error=result.error.value, message=result.message)

        # 遠端項目無法保存全部活動欄位，清除前先另存
        source = next((it for it in items if it.event_details.has_any()), items[0])
        self._event_details.save(source.event_details)

        if len(synced) == len(items):
            written = self._cart.clear()
        else:
            written = self._cart.replace_items([it for it in items if it.id not in synced])
        if not written:
            # 已同步的項目仍留在本機，下次同步會重送
            report.storage_write_failed = True
            log_event("error", "sync.storage_write_failed", synced=len(report.synced_item_ids))

        log_event(
            "info",
            "sync.completed",
            synced=len(report.synced_item_ids),
            failed=len(report.failed_item_ids),
            skipped=len(report.skipped_item_ids),
            failed_drafts=len(report.failed_draft_ids),
        )
        return report

    def _materialize_drafts(self, report: SyncReport) -> None:
        for draft in self._drafts.list_packages():
            report.remote_calls += 1
            result = self._guarded(
                lambda: self._api.create_custom_package(
                    dish_ids=draft.dish_ids,
                    people_count=draft.people_count,
                    name=draft.name,
                )
            )
            if result.ok:
                report.package_map[draft.id] = result.value
            else:
                report.failed_draft_ids.append(draft.id)
                log_event("error", "sync.draft_failed", draft_id=draft.id, error=result.error.value, message=result.message)

        if self._draft_clear_policy == "materialized":
            self._drafts.discard(report.package_map.keys())
        else:
            # 建立失敗的草稿也一併捨棄
            self._drafts.clear()

    @staticmethod
    def _resolve_package_id(item: CartLineItem, package_map: Dict[str, str]):
        if not is_staging_id(item.package_id):
            return item.package_id
        return package_map.get(item.package_id)

    @staticmethod
    def _guarded(call: Callable[[], ApiResult]) -> ApiResult:
        try:
            return call()
        except Exception as exc:
            return Err(ErrorKind.NETWORK, f"unexpected error: {exc}")
