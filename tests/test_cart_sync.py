from conftest import make_package
from partyfud_web.common.services.storage import MemoryStorage
from partyfud_web.services import CartStorage, CartSyncService, CustomPackageStorage, EventDetailsStore
from partyfud_web.services import EventDetails
from partyfud_web.services.cart_storage import CART_STORAGE_KEY
from partyfud_web.services.custom_package_storage import CUSTOM_PACKAGES_STORAGE_KEY
from partyfud_web.services.event_details import EVENT_DETAILS_STORAGE_KEY


def add(cart_storage, package_id, guests=10, price=500.0, **event):
    return cart_storage.add_item(
        package_id=package_id,
        package=make_package(package_id),
        guests=guests,
        price_at_time=price,
        **event,
    )


def snapshot(storage):
    keys = (CART_STORAGE_KEY, CUSTOM_PACKAGES_STORAGE_KEY, EVENT_DETAILS_STORAGE_KEY)
    return {key: storage.get_item(key) for key in keys}


def test_empty_cart_is_a_noop(sync_service, custom_packages, event_details, storage, api):
    custom_packages.add_package(["dish-1"], 10)
    event_details.save(EventDetails(event_date="2025-12-01"))
    before = snapshot(storage)

    report = sync_service.sync()

    assert api.remote_calls == 0
    assert report.remote_calls == 0
    assert snapshot(storage) == before


def test_full_success_clears_cart(sync_service, cart_storage, api):
    add(cart_storage, "pkg-1", guests=12, price=600.0, event_date="2025-12-01", event_time="18:00", event_type="Wedding", area="JBR")

    report = sync_service.sync()

    assert report.completed
    assert cart_storage.list_items() == []
    assert api.item_calls == [
        {
            "package_id": "pkg-1",
            "guests": 12,
            "price_at_time": 600.0,
            "date": "2025-12-01",
            "event_time": "18:00",
            "event_type": "Wedding",
            "area": "JBR",
        }
    ]


def test_partial_failure_keeps_only_failed_item(sync_service, cart_storage, api):
    add(cart_storage, "pkg-1")
    failed = add(cart_storage, "pkg-2")
    add(cart_storage, "pkg-3")
    failed_before = cart_storage.get_item(failed.id).to_dict()
    api.failing_package_ids.add("pkg-2")

    report = sync_service.sync()

    remaining = cart_storage.list_items()
    assert [it.to_dict() for it in remaining] == [failed_before]
    assert report.failed_item_ids == [failed.id]
    assert len(report.synced_item_ids) == 2
    assert not report.completed


def test_unexpected_exception_is_contained(sync_service, cart_storage, api):
    add(cart_storage, "pkg-1")
    kept = add(cart_storage, "pkg-2")
    api.raising_package_ids.add("pkg-2")

    report = sync_service.sync()

    assert report.failed_item_ids == [kept.id]
    assert [it.id for it in cart_storage.list_items()] == [kept.id]


def test_event_details_survive_full_sync(sync_service, cart_storage, event_details):
    add(cart_storage, "pkg-1", event_date="2025-12-01")

    sync_service.sync()

    assert cart_storage.list_items() == []
    assert event_details.get().event_date == "2025-12-01"


def test_event_snapshot_prefers_first_item_with_details(sync_service, cart_storage, event_details):
    add(cart_storage, "pkg-1", event_date="2025-12-01", area="Deira")
    add(cart_storage, "pkg-2")

    sync_service.sync()

    assert event_details.get() == EventDetails(event_date="2025-12-01", area="Deira")


def test_custom_package_is_materialized_before_items(sync_service, cart_storage, custom_packages, api):
    draft = custom_packages.add_package(["dish-1", "dish-2"], 15)
    add(cart_storage, draft.id, guests=15, price=900.0)

    report = sync_service.sync()

    assert report.package_map == {draft.id: "pkg-remote-1"}
    assert api.package_calls == [{"dish_ids": ["dish-1", "dish-2"], "people_count": 15, "name": None}]
    assert api.item_calls[0]["package_id"] == "pkg-remote-1"
    assert cart_storage.list_items() == []
    assert custom_packages.list_packages() == []


def test_failed_custom_package_skips_dependent_item(sync_service, cart_storage, custom_packages, api):
    draft = custom_packages.add_package(["dish-9"], 8)
    dependent = add(cart_storage, draft.id, guests=8)
    add(cart_storage, "pkg-1")
    api.failing_dish_sets.add(("dish-9",))

    report = sync_service.sync()

    assert report.failed_draft_ids == [draft.id]
    assert report.skipped_item_ids == [dependent.id]
    assert [call["package_id"] for call in api.item_calls] == ["pkg-1"]
    assert [it.id for it in cart_storage.list_items()] == [dependent.id]
    # drafts are dropped even when their creation failed
    assert custom_packages.list_packages() == []


def test_materialized_policy_keeps_failed_drafts(make_sync, cart_storage, custom_packages, api):
    ok_draft = custom_packages.add_package(["dish-1"], 8)
    bad_draft = custom_packages.add_package(["dish-9"], 8)
    add(cart_storage, ok_draft.id)
    add(cart_storage, bad_draft.id)
    api.failing_dish_sets.add(("dish-9",))

    make_sync("materialized").sync()

    assert [d.id for d in custom_packages.list_packages()] == [bad_draft.id]


def test_resync_after_success_makes_no_calls(sync_service, cart_storage, api):
    add(cart_storage, "pkg-1")
    add(cart_storage, "pkg-2")

    sync_service.sync()
    calls_after_first = api.remote_calls
    second = sync_service.sync()

    assert cart_storage.list_items() == []
    assert api.remote_calls == calls_after_first
    assert second.remote_calls == 0


def test_failed_item_is_retried_on_next_pass(sync_service, cart_storage, api):
    failed = add(cart_storage, "pkg-2")
    api.failing_package_ids.add("pkg-2")
    sync_service.sync()
    assert [it.id for it in cart_storage.list_items()] == [failed.id]

    api.failing_package_ids.clear()
    report = sync_service.sync()

    assert report.synced_item_ids == [failed.id]
    assert cart_storage.list_items() == []


class ReadOnlyCartStorage(MemoryStorage):
    """Accepts reads but refuses cart writes once ``locked`` is set."""

    def __init__(self):
        super().__init__()
        self.locked = False

    def set_item(self, key, value):
        if self.locked and key == CART_STORAGE_KEY:
            return False
        return super().set_item(key, value)

    def remove_item(self, key):
        if self.locked and key == CART_STORAGE_KEY:
            return False
        return super().remove_item(key)


def make_locked_sync(api):
    backend = ReadOnlyCartStorage()
    events = EventDetailsStore(backend)
    cart = CartStorage(backend, events)
    service = CartSyncService(cart, CustomPackageStorage(backend), events, api)
    return backend, cart, service


def test_failed_clear_is_reported(api):
    backend, cart, service = make_locked_sync(api)
    add(cart, "pkg-1")
    backend.locked = True

    report = service.sync()

    assert report.synced_item_ids
    assert report.storage_write_failed is True
    assert report.completed is False
    assert report.to_dict()["storage_write_failed"] is True
    assert len(cart.list_items()) == 1


def test_failed_rewrite_is_reported(api):
    backend, cart, service = make_locked_sync(api)
    add(cart, "pkg-1")
    add(cart, "pkg-2")
    api.failing_package_ids.add("pkg-2")
    backend.locked = True

    report = service.sync()

    assert report.storage_write_failed is True
    assert not report.completed


def test_successful_sync_reports_no_write_failure(sync_service, cart_storage):
    add(cart_storage, "pkg-1")

    report = sync_service.sync()

    assert report.storage_write_failed is False
