from decimal import Decimal

from decouple import config

DEFAULT_CURRENCY = config("DEFAULT_CURRENCY", default="NGN")

PAYSTACK_BASE_URL = config("PAYSTACK_BASE_URL", default="https://api.paystack.co")
PAYSTACK_SECRET_KEY = config("PAYSTACK_SECRET_KEY", default="sk_test_...")
PAYSTACK_PUBLIC_KEY = config("PAYSTACK_PUBLIC_KEY", default="pk_test_...")
PAYSTACK_TIMEOUT_SECONDS = config("PAYSTACK_TIMEOUT_SECONDS", default=30, cast=int)

# Defaults for the PlatformSettings singleton; admins can change them at runtime.
DEFAULT_PLATFORM_FEE_PERCENT = config("DEFAULT_PLATFORM_FEE_PERCENT", cast=Decimal, default="5.00")
DEFAULT_PROCESSING_FEE_PERCENT = config("DEFAULT_PROCESSING_FEE_PERCENT", cast=Decimal, default="1.50")
DEFAULT_PROCESSING_FEE_FIXED = config("DEFAULT_PROCESSING_FEE_FIXED", cast=Decimal, default="100.00")
DEFAULT_FREE_TICKETS_THRESHOLD = config("DEFAULT_FREE_TICKETS_THRESHOLD", cast=int, default=100)
DEFAULT_MINIMUM_PAYOUT = config("DEFAULT_MINIMUM_PAYOUT", cast=Decimal, default="10000.00")
DEFAULT_PAYOUT_HOLD_DAYS = config("DEFAULT_PAYOUT_HOLD_DAYS", cast=int, default=7)

RESERVATION_EXPIRY_MINUTES = config("RESERVATION_EXPIRY_MINUTES", cast=int, default=10)
