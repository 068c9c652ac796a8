from typing import Any, Optional
from sqlalchemy.orm import Session

from ..database.entities import AppSettings
from ..models import (
    AppSettingsUpdate,
    PublicSettingsResponse,
)
from ..settings import Settings


class AppSettingsService:
    """
    Single-row deployment settings: branding, timezone, API keys and the
    active Luma event. The row is created lazily on first write.
    """

    def __init__(self, db: Session, settings: Settings):
        self.db = db
        self.settings = settings

    def get(self) -> Optional[AppSettings]:
        return self.db.query(AppSettings).order_by(AppSettings.id.asc()).first()

    def get_or_default(self) -> AppSettings:
        """Return the stored row, or an unsaved row holding the defaults."""
        return self.get() or self._defaults()

    def is_empty(self) -> bool:
        return self.db.query(AppSettings).count() == 0

    def ensure_defaults(self) -> AppSettings:
        row = self.get()
        if row is None:
            row = self._defaults()
            self.db.add(row)
            self.db.commit()
            self.db.refresh(row)
        return row

    def update(self, update: AppSettingsUpdate) -> AppSettings:
        # Optional keys are only touched when the caller sent them
        return self._set(**update.model_dump(exclude_unset=True))

    def set_active_event(self, luma_event_id: str | None) -> AppSettings:
        return self._set(luma_event_id=luma_event_id)

    def public_view(self) -> PublicSettingsResponse:
        row = self.get_or_default()
        return PublicSettingsResponse(city_name=row.city_name, timezone=row.timezone)

    def _defaults(self) -> AppSettings:
        return AppSettings(
            city_name=self.settings.default_city_name,
            timezone=self.settings.default_timezone,
        )

    def _set(self, **values: Any) -> AppSettings:
        row = self.get()
        if row is None:
            row = self._defaults()
            self.db.add(row)
        for key, value in values.items():
            setattr(row, key, value)
        self.db.commit()
        self.db.refresh(row)
        return row
