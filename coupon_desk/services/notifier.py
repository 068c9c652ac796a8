from typing import (
    Callable,
    Optional,
    Union,
)

from ..clients.resend_client import ResendClient
from ..database.entities import (
    AppSettings,
    Attendee,
    CouponCode,
    LumaGuest,
)
from ..emails.coupon_email import render_coupon_email
from ..exceptions import ConfigurationError
from ..logging_utils import get_logger
from ..settings import Settings

logger = get_logger(__name__)

MailClientFactory = Callable[[str], ResendClient]


class Notifier:
    """
    Renders the coupon email and dispatches it through Resend.

    Failures are raised to the caller, which decides whether they matter:
    registration and assignment log them, explicit resends report them.
    """

    def __init__(
        self,
        settings: Settings,
        mail_client_factory: Optional[MailClientFactory] = None,
    ):
        self.settings = settings
        self.mail_client_factory = mail_client_factory or self._default_client

    def _default_client(self, api_key: str) -> ResendClient:
        return ResendClient(
            api_key,
            base_url=self.settings.resend_base_url,
            timeout=self.settings.mail_timeout,
        )

    def event_name(self, app_settings: AppSettings) -> str:
        brand = self.settings.brand_name
        city = (app_settings.city_name or "").strip()
        if not city or city.startswith(brand):
            return city or brand
        return f"{brand} {city}"

    def sender(self, app_settings: AppSettings) -> str:
        return f"{self.event_name(app_settings)} <{self.settings.mail_sender_address}>"

    async def notify(
        self,
        recipient: Union[Attendee, LumaGuest],
        coupon: CouponCode,
        app_settings: AppSettings,
    ) -> str | None:
        if not app_settings.resend_api_key:
            raise ConfigurationError(
                "Resend API key not configured. Please set it in Settings."
            )
        html = render_coupon_email(
            name=recipient.name,
            code=coupon.code,
            event_name=self.event_name(app_settings),
            redemption_url_template=self.settings.redemption_url_template,
        )
        async with self.mail_client_factory(app_settings.resend_api_key) as client:
            message_id = await client.send(
                sender=self.sender(app_settings),
                to=recipient.email,
                subject=self.settings.mail_subject,
                html=html,
            )
        logger.info(f"Coupon email sent to {recipient.email} ({message_id})")
        return message_id
