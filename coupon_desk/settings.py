from datetime import (
    timedelta,
)
from pydantic_settings import (
    BaseSettings,
    SettingsConfigDict,
)
from pydantic import Field

from . import (
    constants,
)


class Settings(BaseSettings):
    env: str = "dev"
    # Admin accounts
    admin_registration_secret: str | None = None
    jwt_secret: str = Field(default="change-me", min_length=8)
    jwt_alg: str = "HS256"
    jwt_access_minutes: int = 720
    # Luma API
    luma_base_url: str = constants.LUMA_BASE_URL
    luma_calendar_id: str | None = None
    luma_timeout: float = 30.0
    luma_page_delay: timedelta = timedelta(milliseconds=200)
    luma_max_retries: int = 2
    luma_retry_delay: timedelta = timedelta(seconds=5)
    # Upper bound applied to Retry-After before sleeping
    luma_max_retry_delay: timedelta = timedelta(seconds=60)
    # Mail transport
    resend_base_url: str = constants.RESEND_BASE_URL
    mail_timeout: float = 10.0
    mail_sender_address: str = "onboarding@resend.dev"
    mail_subject: str = "Your Cursor Coupon Code!"
    brand_name: str = "Cafe Cursor"
    redemption_url_template: str = "https://cursor.com/referral?code={code}"
    # Deployment defaults used until the settings row exists
    default_city_name: str = constants.DEFAULT_CITY_NAME
    default_timezone: str = constants.DEFAULT_TIMEZONE
    # Guest sync pacing
    sync_batch_size: int = Field(default=50, gt=0)
    sync_batch_delay: timedelta = timedelta(milliseconds=100)
    cors_origins: list[str] = ["http://localhost:3000"]

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")
