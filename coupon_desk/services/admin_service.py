import secrets
from typing import Optional
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..database.entities import Admin
from ..exceptions import (
    AuthenticationError,
    ConfigurationError,
    DuplicateContact,
)
from ..logging_utils import get_logger
from ..models import (
    AdminRegisterRequest,
    AdminRegisterResponse,
    LoginRequest,
    TokenResponse,
)
from ..security import (
    create_access_token,
    hash_password,
    verify_password,
)
from ..settings import Settings
from .app_settings_service import AppSettingsService

logger = get_logger(__name__)

FIRST_ADMIN_REDIRECT = "/admin/settings?setup=true"
ADMIN_REDIRECT = "/admin/dashboard"


class AdminService:
    def __init__(
        self,
        db: Session,
        settings: Settings,
        app_settings_service: AppSettingsService,
    ):
        self.db = db
        self.settings = settings
        self.app_settings_service = app_settings_service

    def get_admin(self, admin_id: int) -> Optional[Admin]:
        return self.db.get(Admin, admin_id)

    def register_admin(self, request: AdminRegisterRequest) -> AdminRegisterResponse:
        """
        Create an admin account guarded by the shared registration secret.

        The first admin of a fresh deployment also seeds the settings row and
        is sent to the settings page to finish setup.
        """
        expected = self.settings.admin_registration_secret
        if not expected:
            raise ConfigurationError("Admin registration is not configured")
        if not secrets.compare_digest(
            request.registration_secret.encode("utf-8"),
            expected.encode("utf-8"),
        ):
            raise AuthenticationError("Invalid registration secret")

        first_admin = self.app_settings_service.is_empty()
        admin = Admin(
            name=request.name,
            email=request.email,
            password_hash=hash_password(request.password),
        )
        self.db.add(admin)
        try:
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            raise DuplicateContact(request.email)

        if first_admin:
            self.app_settings_service.ensure_defaults()
        logger.info(f"Registered admin {request.email} (first: {first_admin})")
        return AdminRegisterResponse(
            first_admin=first_admin,
            redirect=FIRST_ADMIN_REDIRECT if first_admin else ADMIN_REDIRECT,
        )

    def login(self, request: LoginRequest) -> TokenResponse:
        admin = self.db.query(Admin).filter(Admin.email == request.email).first()
        if (
            admin is None
            or not admin.is_active
            or not verify_password(request.password, admin.password_hash)
        ):
            raise AuthenticationError("Invalid email or password")
        return TokenResponse(
            access_token=create_access_token(admin_id=admin.id, settings=self.settings)
        )
