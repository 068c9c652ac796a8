import json

import httpx
import pytest

from coupon_desk.clients.resend_client import ResendClient
from coupon_desk.database.entities import (
    AppSettings,
    Attendee,
    CouponCode,
)
from coupon_desk.emails.coupon_email import (
    first_name,
    redemption_url,
    render_coupon_email,
)
from coupon_desk.exceptions import (
    ConfigurationError,
    MailDeliveryError,
)
from coupon_desk.services.notifier import Notifier


def test_first_name_is_first_token():
    assert first_name("Ada Lovelace") == "Ada"
    assert first_name("  Grace   Hopper ") == "Grace"
    assert first_name("Linus") == "Linus"


def test_redemption_url_encodes_code():
    url = redemption_url("https://cursor.com/referral?code={code}", "AB C/1")
    assert url == "https://cursor.com/referral?code=AB%20C%2F1"


def test_render_coupon_email_contains_code_and_link():
    html = render_coupon_email(
        name="Ada Lovelace",
        code="CURSOR-123",
        event_name="Cafe Cursor Toronto",
        redemption_url_template="https://cursor.com/referral?code={code}",
    )
    assert "Hello Ada," in html
    assert "CURSOR-123" in html
    assert "https://cursor.com/referral?code=CURSOR-123" in html
    assert "Cafe Cursor Toronto" in html


def test_render_coupon_email_escapes_name():
    html = render_coupon_email(
        name="<script>alert(1)</script>",
        code="X",
        event_name="Cafe Cursor",
        redemption_url_template="https://cursor.com/referral?code={code}",
    )
    assert "<script>" not in html


class TestNotifier:
    def setup_method(self):
        self.sent = []

    def _notifier(self, settings):
        sent = self.sent

        class Recorder:
            async def __aenter__(self):
                return self

            async def __aexit__(self, exc_type, exc, tb):
                return None

            async def send(self, **kwargs):
                sent.append(kwargs)
                return "msg-1"

        return Notifier(settings, mail_client_factory=lambda key: Recorder())

    def test_event_name_prefixes_brand(self, settings):
        notifier = self._notifier(settings)
        assert notifier.event_name(AppSettings(city_name="Toronto")) == "Cafe Cursor Toronto"
        assert notifier.event_name(AppSettings(city_name="Cafe Cursor")) == "Cafe Cursor"
        assert notifier.event_name(AppSettings(city_name="")) == "Cafe Cursor"

    @pytest.mark.asyncio
    async def test_notify_sends_rendered_email(self, settings):
        notifier = self._notifier(settings)
        app_settings = AppSettings(city_name="Toronto", resend_api_key="re_key")

        message_id = await notifier.notify(
            Attendee(name="Ada Lovelace", email="ada@x.com"),
            CouponCode(code="CODE1"),
            app_settings,
        )

        assert message_id == "msg-1"
        assert len(self.sent) == 1
        message = self.sent[0]
        assert message["to"] == "ada@x.com"
        assert message["sender"] == "Cafe Cursor Toronto <onboarding@resend.dev>"
        assert message["subject"] == settings.mail_subject
        assert "CODE1" in message["html"]

    @pytest.mark.asyncio
    async def test_notify_without_mail_key_raises(self, settings):
        notifier = self._notifier(settings)

        with pytest.raises(ConfigurationError):
            await notifier.notify(
                Attendee(name="Ada", email="ada@x.com"),
                CouponCode(code="CODE1"),
                AppSettings(city_name="Toronto"),
            )
        assert self.sent == []


@pytest.mark.asyncio
async def test_resend_client_posts_message():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        seen["auth"] = request.headers["Authorization"]
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"id": "email-1"})

    async with ResendClient(
        "re_key",
        base_url="https://mail.test",
        transport=httpx.MockTransport(handler),
    ) as client:
        message_id = await client.send(
            sender="Cafe Cursor <onboarding@resend.dev>",
            to="ada@x.com",
            subject="Hi",
            html="<p>Hi</p>",
        )

    assert message_id == "email-1"
    assert seen["url"] == "https://mail.test/emails"
    assert seen["auth"] == "Bearer re_key"
    assert seen["body"]["to"] == ["ada@x.com"]
    assert seen["body"]["from"] == "Cafe Cursor <onboarding@resend.dev>"


@pytest.mark.asyncio
async def test_resend_client_error_raises_mail_delivery_error():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(422, json={"message": "Invalid `to` field"})

    async with ResendClient(
        "re_key",
        base_url="https://mail.test",
        transport=httpx.MockTransport(handler),
    ) as client:
        with pytest.raises(MailDeliveryError) as exc_info:
            await client.send(sender="a <a@x.com>", to="b@x.com", subject="s", html="h")

    assert "422" in str(exc_info.value)


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "response",
    [
        httpx.Response(200, text="OK"),
        httpx.Response(200, json=["queued"]),
    ],
)
async def test_resend_client_accepts_success_without_message_id(response):
    async with ResendClient(
        "re_key",
        base_url="https://mail.test",
        transport=httpx.MockTransport(lambda request: response),
    ) as client:
        message_id = await client.send(sender="a <a@x.com>", to="b@x.com", subject="s", html="h")

    assert message_id is None


@pytest.mark.asyncio
async def test_resend_client_error_with_text_body():
    async with ResendClient(
        "re_key",
        base_url="https://mail.test",
        transport=httpx.MockTransport(lambda request: httpx.Response(503, text="down")),
    ) as client:
        with pytest.raises(MailDeliveryError) as exc_info:
            await client.send(sender="a <a@x.com>", to="b@x.com", subject="s", html="h")

    assert "503" in str(exc_info.value)
    assert "down" in str(exc_info.value)
