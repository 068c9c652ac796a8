import os

os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")

from datetime import timedelta

import httpx
import pytest
from sqlalchemy.orm import sessionmaker

from coupon_desk.clients.luma_client import LumaApiClient
from coupon_desk.database.database import build_engine
from coupon_desk.database.entities import (
    AppSettings,
    Attendee,
    Base,
    CouponCode,
)
from coupon_desk.exceptions import MailDeliveryError
from coupon_desk.services.app_settings_service import AppSettingsService
from coupon_desk.services.attendee_service import AttendeeService
from coupon_desk.services.coupon_allocator import CouponAllocator
from coupon_desk.services.notifier import Notifier
from coupon_desk.settings import Settings


class FakeMailClient:
    """Stands in for ResendClient; records what would have been sent."""

    def __init__(self, outbox: list, fail: bool = False):
        self.outbox = outbox
        self.fail = fail

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        return None

    async def send(self, *, sender, to, subject, html):
        if self.fail:
            raise MailDeliveryError("Failed to send email: 500")
        self.outbox.append(
            {"from": sender, "to": to, "subject": subject, "html": html}
        )
        return f"msg-{len(self.outbox)}"


@pytest.fixture
def settings():
    return Settings(
        env="test",
        jwt_secret="test-jwt-secret",
        admin_registration_secret="let-me-in",
        luma_base_url="https://luma.test",
        resend_base_url="https://mail.test",
        luma_page_delay=timedelta(0),
        luma_retry_delay=timedelta(0),
        luma_max_retry_delay=timedelta(0),
        sync_batch_delay=timedelta(0),
    )


@pytest.fixture
def engine(tmp_path):
    engine = build_engine(f"sqlite:///{tmp_path / 'coupon_desk.db'}")
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def outbox():
    return []


@pytest.fixture
def mail_fails():
    return {"fail": False}


@pytest.fixture
def notifier(settings, outbox, mail_fails):
    return Notifier(
        settings,
        mail_client_factory=lambda api_key: FakeMailClient(
            outbox, fail=mail_fails["fail"]
        ),
    )


@pytest.fixture
def app_settings_service(db, settings):
    return AppSettingsService(db, settings)


@pytest.fixture
def allocator(db):
    return CouponAllocator(db)


@pytest.fixture
def attendee_service(db, allocator, notifier, app_settings_service):
    return AttendeeService(db, allocator, notifier, app_settings_service)


@pytest.fixture
def configured(db):
    """Deployment settings with both API keys present."""
    row = AppSettings(
        city_name="Toronto",
        timezone="America/Toronto",
        luma_api_key="luma-key",
        resend_api_key="resend-key",
        luma_event_id="evt-123",
    )
    db.add(row)
    db.commit()
    return row


def add_coupons(db, *codes):
    coupons = [CouponCode(code=code) for code in codes]
    db.add_all(coupons)
    db.commit()
    return coupons


def add_attendee(db, name, email, **kwargs):
    attendee = Attendee(name=name, email=email, **kwargs)
    db.add(attendee)
    db.commit()
    return attendee


def make_guest(index, **overrides):
    guest = {
        "id": f"gst-{index}",
        "name": f"Guest {index}",
        "email": f"Guest{index}@Example.com",
        "registration_status": "confirmed",
        "approval_status": "approved",
        "guest_key": f"key-{index}",
        "created_at": "2026-09-01T18:00:00Z",
    }
    guest.update(overrides)
    return guest


class FakeLuma:
    """In-memory Luma API served through httpx.MockTransport."""

    def __init__(self, guests=None, page_size=2):
        self.event = {
            "api_id": "evt-123",
            "name": "Cafe Cursor Toronto",
            "start_at": "2026-10-01T22:00:00Z",
            "timezone": "America/Toronto",
            "url": "https://lu.ma/cafe-cursor-toronto",
            "guest_count": 3,
            "location": {"type": "offline", "name": "Cafe", "address": "1 King St"},
            "visibility": "public",
        }
        self.guests = guests if guests is not None else []
        self.page_size = page_size
        self.requests = []
        self.fail_paths = {}

    def handler(self, request):
        path = request.url.path
        params = dict(request.url.params)
        self.requests.append((path, params))
        if path in self.fail_paths:
            status, body = self.fail_paths[path]
            if isinstance(body, str):
                return httpx.Response(status, text=body)
            return httpx.Response(status, json=body)
        if request.headers.get("x-luma-api-key") != "luma-key":
            return httpx.Response(401, json={"error": {"message": "Invalid API key"}})
        if path == "/v1/user/get-self":
            return httpx.Response(200, json={"user": {"name": "Organizer", "email": "org@x.com"}})
        if path == "/v1/event/get":
            if params.get("event_api_id") != self.event["api_id"]:
                return httpx.Response(404, json={"error": {"message": "Event not found"}})
            return httpx.Response(200, json={"event": self.event})
        if path == "/v1/event/get-guests":
            guests = self.guests
            if params.get("status"):
                guests = [g for g in guests if g.get("registration_status") == params["status"]]
            start = int(params.get("pagination_cursor", "0"))
            end = start + self.page_size
            has_more = end < len(guests)
            return httpx.Response(
                200,
                json={
                    "guests": guests[start:end],
                    "pagination": {
                        "has_more": has_more,
                        "next_cursor": str(end) if has_more else None,
                    },
                },
            )
        if path == "/v1/calendar/list-events":
            return httpx.Response(
                200,
                json={
                    "entries": [{"event": self.event}, {"event": {"api_id": "evt-456", "name": "Second"}}],
                    "has_more": False,
                },
            )
        return httpx.Response(404, json={"error": {"message": "Not found"}})


@pytest.fixture
def fake_luma():
    return FakeLuma()


@pytest.fixture
def luma_factory(settings, fake_luma):
    def factory(api_key):
        return LumaApiClient.from_settings(
            api_key,
            settings,
            transport=httpx.MockTransport(fake_luma.handler),
        )

    return factory
