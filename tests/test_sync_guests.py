import pytest
from unittest.mock import patch

from coupon_desk.constants import (
    RegistrationStatus,
    SyncStatus,
)
from coupon_desk.database.entities import (
    AppSettings,
    LumaEvent,
    LumaGuest,
    LumaSyncLog,
)
from coupon_desk.exceptions import ConfigurationError
from coupon_desk.services.luma_event_service import LumaEventService
from coupon_desk.tasks.sync_events import sync_events
from coupon_desk.tasks.sync_guests import sync_guests

from conftest import (
    add_coupons,
    make_guest,
)

GUEST_COLUMNS = (
    "luma_guest_id",
    "luma_event_id",
    "guest_key",
    "name",
    "email",
    "registration_status",
    "approval_status",
    "coupon_id",
)


def _snapshot(db):
    return {
        g.luma_guest_id: tuple(getattr(g, c) for c in GUEST_COLUMNS)
        for g in db.query(LumaGuest).all()
    }


@pytest.mark.asyncio
async def test_sync_mirrors_guests_and_event(db, settings, configured, fake_luma, luma_factory):
    fake_luma.guests = [make_guest(i) for i in range(3)]

    result = await sync_guests(db, settings, client_factory=luma_factory)

    assert result.success is True
    assert (result.guests_synced, result.guests_added, result.guests_updated) == (3, 3, 0)
    assert result.coupons_assigned == 0
    guest = db.query(LumaGuest).filter_by(luma_guest_id="gst-0").one()
    assert guest.email == "guest0@example.com"
    assert guest.registration_status == RegistrationStatus.CONFIRMED
    assert guest.coupon_id is None
    assert guest.synced_at is not None

    event = db.query(LumaEvent).one()
    assert event.luma_event_id == "evt-123"
    assert event.location_name == "Cafe"
    assert event.last_synced_at is not None

    log = db.query(LumaSyncLog).one()
    assert log.status == SyncStatus.COMPLETED
    assert log.guests_added == 3
    assert log.completed_at is not None
    assert log.error_message is None


@pytest.mark.asyncio
async def test_second_sync_is_idempotent(db, settings, configured, fake_luma, luma_factory):
    fake_luma.guests = [make_guest(i) for i in range(4)]
    await sync_guests(db, settings, client_factory=luma_factory)
    before = _snapshot(db)

    result = await sync_guests(db, settings, client_factory=luma_factory)

    assert result.guests_added == 0
    assert result.guests_updated == 4
    assert _snapshot(db) == before
    assert db.query(LumaGuest).count() == 4
    assert db.query(LumaEvent).count() == 1


@pytest.mark.asyncio
async def test_sync_never_assigns_coupons(db, settings, configured, fake_luma, luma_factory):
    add_coupons(db, "A", "B")
    fake_luma.guests = [make_guest(1)]

    result = await sync_guests(db, settings, client_factory=luma_factory)

    assert result.coupons_assigned == 0
    assert db.query(LumaGuest).one().coupon_id is None


@pytest.mark.asyncio
async def test_one_bad_guest_does_not_block_the_rest(
    db, settings, configured, fake_luma, luma_factory
):
    guests = [make_guest(i) for i in range(50)]
    del guests[17]["email"]
    fake_luma.guests = guests
    fake_luma.page_size = 20
    settings.sync_batch_size = 10

    result = await sync_guests(db, settings, client_factory=luma_factory)

    assert result.success is False
    assert result.guests_synced == 50
    assert result.guests_added == 49
    assert len(result.errors) == 1
    assert result.errors[0].startswith("Failed to process guest None:")
    assert db.query(LumaGuest).count() == 49

    log = db.query(LumaSyncLog).one()
    assert log.status == SyncStatus.FAILED
    assert log.error_message == result.errors[0]
    assert db.query(LumaEvent).one().last_synced_at is not None


@pytest.mark.asyncio
async def test_sync_of_explicit_event_filters_status(
    db, settings, configured, fake_luma, luma_factory
):
    fake_luma.guests = [
        make_guest(1),
        make_guest(2, registration_status="waitlist"),
    ]

    result = await sync_guests(
        db,
        settings,
        event_id="evt-123",
        status=RegistrationStatus.WAITLIST,
        client_factory=luma_factory,
    )

    assert result.guests_added == 1
    assert db.query(LumaGuest).one().luma_guest_id == "gst-2"


@pytest.mark.asyncio
async def test_remote_failure_is_logged_as_failed_sync(
    db, settings, configured, fake_luma, luma_factory
):
    fake_luma.fail_paths["/v1/event/get-guests"] = (
        500,
        {"error": {"message": "Upstream exploded"}},
    )

    result = await sync_guests(db, settings, client_factory=luma_factory)

    assert result.success is False
    assert result.errors == ["Sync failed: Upstream exploded"]
    log = db.query(LumaSyncLog).one()
    assert log.status == SyncStatus.FAILED
    assert log.error_message == "Sync failed: Upstream exploded"


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "body",
    [{"unexpected": True}, "not json at all"],
)
async def test_malformed_event_response_fails_the_sync_log(
    db, settings, configured, fake_luma, luma_factory, body
):
    fake_luma.fail_paths["/v1/event/get"] = (200, body)

    result = await sync_guests(db, settings, client_factory=luma_factory)

    assert result.success is False
    log = db.query(LumaSyncLog).one()
    assert log.status == SyncStatus.FAILED
    assert log.completed_at is not None
    assert db.query(LumaGuest).count() == 0


@pytest.mark.asyncio
async def test_unexpected_error_still_closes_the_sync_log(
    db, settings, configured, fake_luma, luma_factory
):
    with patch.object(
        LumaEventService,
        "upsert_event",
        side_effect=RuntimeError("boom"),
    ):
        with pytest.raises(RuntimeError):
            await sync_guests(db, settings, client_factory=luma_factory)

    log = db.query(LumaSyncLog).one()
    assert log.status == SyncStatus.FAILED
    assert log.error_message == "Sync failed: boom"
    assert log.completed_at is not None


@pytest.mark.asyncio
async def test_sync_without_api_key_writes_nothing(db, settings, fake_luma, luma_factory):
    db.add(AppSettings(city_name="Toronto", timezone="America/Toronto", luma_event_id="evt-123"))
    db.commit()

    with pytest.raises(ConfigurationError):
        await sync_guests(db, settings, client_factory=luma_factory)

    assert db.query(LumaSyncLog).count() == 0
    assert fake_luma.requests == []


@pytest.mark.asyncio
async def test_sync_without_event_writes_nothing(db, settings, fake_luma, luma_factory):
    db.add(AppSettings(city_name="Toronto", timezone="America/Toronto", luma_api_key="luma-key"))
    db.commit()

    with pytest.raises(ConfigurationError):
        await sync_guests(db, settings, client_factory=luma_factory)

    assert db.query(LumaSyncLog).count() == 0
    assert fake_luma.requests == []


@pytest.mark.asyncio
async def test_sync_events_caches_calendar(db, settings, configured, luma_factory):
    result = await sync_events(db, settings, client_factory=luma_factory)

    assert result.success is True
    assert result.events_synced == 2
    ids = sorted(e.luma_event_id for e in db.query(LumaEvent).all())
    assert ids == ["evt-123", "evt-456"]
