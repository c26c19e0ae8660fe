"""購物車本地儲存與同步服務模組入口。"""

from .cart_storage import CartLineItem, CartStorage, CatererRef, PackageSnapshot, price_for_guests
from .cart_sync import CartSyncService, SyncReport
from .custom_package_storage import CustomPackageDraft, CustomPackageStorage, is_staging_id
from .event_details import EventDetails, EventDetailsStore

__all__ = [
    "CartLineItem",
    "CartStorage",
    "CatererRef",
    "PackageSnapshot",
    "price_for_guests",
    "CartSyncService",
    "SyncReport",
    "CustomPackageDraft",
    "CustomPackageStorage",
    "is_staging_id",
    "EventDetails",
    "EventDetailsStore",
]
