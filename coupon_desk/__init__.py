from importlib.metadata import (
    version,
    PackageNotFoundError,
)

APP_TITLE = "Coupon Desk"

try:
    __version__ = version("coupon-desk")
except PackageNotFoundError:
    raise ValueError("coupon-desk package not found")
