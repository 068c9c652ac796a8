import httpx
import pytest

from coupon_desk.clients.resend_client import ResendClient
from coupon_desk.database.entities import (
    Attendee,
    CouponCode,
)
from coupon_desk.constants import AttendeeSource
from coupon_desk.exceptions import DuplicateContact
from coupon_desk.services.attendee_service import AttendeeService
from coupon_desk.services.notifier import Notifier
from coupon_desk.services.registration_service import RegistrationService

from conftest import add_coupons


@pytest.fixture
def registration_service(attendee_service, allocator):
    return RegistrationService(attendee_service, allocator)


@pytest.mark.asyncio
async def test_registrations_share_pool_until_exhausted(
    db, registration_service, configured, outbox
):
    add_coupons(db, "A", "B")

    alice = await registration_service.register("Alice", "a@x.com")
    bob = await registration_service.register("Bob", "b@x.com")
    carol = await registration_service.register("Carol", "c@x.com")

    assert alice.registered and alice.coupon_assigned
    assert bob.registered and bob.coupon_assigned
    assert carol.registered
    assert carol.coupon_assigned is False
    assert carol.message == "Registration successful!"

    codes = {
        a.email: a.coupon.code
        for a in db.query(Attendee).filter(Attendee.coupon_id.is_not(None))
    }
    assert set(codes) == {"a@x.com", "b@x.com"}
    assert set(codes.values()) == {"A", "B"}
    assert db.query(Attendee).filter_by(email="c@x.com").one().coupon_id is None
    assert [m["to"] for m in outbox] == ["a@x.com", "b@x.com"]


@pytest.mark.asyncio
async def test_registration_normalises_email_and_tags_source(
    db, registration_service, configured
):
    add_coupons(db, "A")

    await registration_service.register("  Alice  ", "  Alice@Example.COM ")

    attendee = db.query(Attendee).one()
    assert attendee.email == "alice@example.com"
    assert attendee.name == "Alice"
    assert attendee.source == AttendeeSource.WEBSITE
    assert attendee.last_email_sent_at is not None


@pytest.mark.asyncio
async def test_duplicate_registration_writes_nothing(
    db, registration_service, configured
):
    add_coupons(db, "A", "B")
    await registration_service.register("Alice", "a@x.com")

    with pytest.raises(DuplicateContact):
        await registration_service.register("Alice Again", "A@X.com")

    assert db.query(Attendee).count() == 1
    assert db.query(CouponCode).filter(CouponCode.is_used.is_(True)).count() == 1


@pytest.mark.asyncio
async def test_mail_failure_keeps_coupon(
    db, registration_service, configured, outbox, mail_fails
):
    add_coupons(db, "A")
    mail_fails["fail"] = True

    response = await registration_service.register("Alice", "a@x.com")

    assert response.coupon_assigned is True
    attendee = db.query(Attendee).one()
    assert attendee.coupon.code == "A"
    assert attendee.last_email_sent_at is None
    assert outbox == []


@pytest.mark.asyncio
async def test_missing_mail_key_does_not_fail_registration(db, registration_service):
    add_coupons(db, "A")

    response = await registration_service.register("Alice", "a@x.com")

    assert response.registered is True
    assert response.coupon_assigned is True


@pytest.mark.asyncio
async def test_unparseable_mail_response_still_counts_as_sent(
    db, settings, allocator, app_settings_service, configured
):
    add_coupons(db, "A")

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, text="OK")

    notifier = Notifier(
        settings,
        mail_client_factory=lambda api_key: ResendClient(
            api_key,
            base_url="https://mail.test",
            transport=httpx.MockTransport(handler),
        ),
    )
    attendee_service = AttendeeService(db, allocator, notifier, app_settings_service)
    service = RegistrationService(attendee_service, allocator)

    response = await service.register("Alice", "a@x.com")

    assert response.registered is True
    assert response.coupon_assigned is True
    attendee = db.query(Attendee).one()
    assert attendee.coupon.code == "A"
    assert attendee.last_email_sent_at is not None
