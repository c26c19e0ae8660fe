from datetime import datetime, timedelta, timezone

import pytest

from partyfud_web.common.services.storage import MemoryStorage
from partyfud_web.common.utils.result import Err, ErrorKind, Ok
from partyfud_web.services import (
    CartStorage,
    CartSyncService,
    CatererRef,
    CustomPackageStorage,
    EventDetailsStore,
    PackageSnapshot,
)


class FakeClock:
    def __init__(self, start=None, step=timedelta(seconds=1)):
        self.now = start or datetime(2025, 11, 1, 9, 0, tzinfo=timezone.utc)
        self.step = step

    def __call__(self):
        value = self.now
        self.now = self.now + self.step
        return value


class FakeApiClient:
    """Records every call; failures are scripted per dish set or package id."""

    def __init__(self):
        self.package_calls = []
        self.item_calls = []
        self.failing_dish_sets = set()
        self.failing_package_ids = set()
        self.raising_package_ids = set()

    @property
    def remote_calls(self):
        return len(self.package_calls) + len(self.item_calls)

    def create_custom_package(self, *, dish_ids, people_count, name=None):
        self.package_calls.append({"dish_ids": list(dish_ids), "people_count": people_count, "name": name})
        if tuple(dish_ids) in self.failing_dish_sets:
            return Err(ErrorKind.HTTP, "dish unavailable", 422)
        return Ok(f"pkg-remote-{len(self.package_calls)}")

    def create_cart_item(self, **payload):
        self.item_calls.append(payload)
        if payload["package_id"] in self.raising_package_ids:
            raise RuntimeError("connection reset")
        if payload["package_id"] in self.failing_package_ids:
            return Err(ErrorKind.HTTP, "server error", 500)
        return Ok({"id": f"srv-{len(self.item_calls)}", **payload})


def make_package(package_id="pkg-1", price_per_person=50.0, people_count=10, currency="AED"):
    return PackageSnapshot(
        id=package_id,
        name=f"Package {package_id}",
        people_count=people_count,
        total_price=price_per_person * people_count,
        price_per_person=price_per_person,
        currency=currency,
        cover_image_url=None,
        caterer=CatererRef(id="cat-1", business_name="Desert Feast"),
    )


@pytest.fixture
def storage():
    return MemoryStorage()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def event_details(storage):
    return EventDetailsStore(storage)


@pytest.fixture
def cart_storage(storage, event_details, clock):
    return CartStorage(storage, event_details, clock=clock)


@pytest.fixture
def custom_packages(storage):
    return CustomPackageStorage(storage)


@pytest.fixture
def api():
    return FakeApiClient()


@pytest.fixture
def make_sync(cart_storage, custom_packages, event_details, api):
    def _make(policy="always"):
        return CartSyncService(cart_storage, custom_packages, event_details, api, draft_clear_policy=policy)

    return _make


@pytest.fixture
def sync_service(make_sync):
    return make_sync()
