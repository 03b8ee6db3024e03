from decouple import config

from .base import DEBUG

SESSION_STORE_COOKIE_NAME = config("SESSION_STORE_COOKIE_NAME", default="session")
SESSION_STORE_KEY_PREFIX = "sess"
SESSION_STORE_ORGANIZER_TTL_SECONDS = config("SESSION_STORE_ORGANIZER_TTL_SECONDS", default=2 * 60 * 60, cast=int)
SESSION_STORE_DEFAULT_TTL_SECONDS = config("SESSION_STORE_DEFAULT_TTL_SECONDS", default=8 * 60 * 60, cast=int)
SESSION_STORE_ACTIVITY_DEBOUNCE_SECONDS = 60
SESSION_STORE_COOKIE_SECURE = config("SESSION_STORE_COOKIE_SECURE", default=not DEBUG, cast=bool)

EMAIL_VERIFICATION_CODE_LIFETIME_MINUTES = config("EMAIL_VERIFICATION_CODE_LIFETIME_MINUTES", default=15, cast=int)
EMAIL_VERIFICATION_RESEND_COOLDOWN_SECONDS = 60
EMAIL_VERIFICATION_MAX_ATTEMPTS = 5

MAX_FAILED_LOGIN_ATTEMPTS = config("MAX_FAILED_LOGIN_ATTEMPTS", default=5, cast=int)
LOGIN_LOCKOUT_MINUTES = config("LOGIN_LOCKOUT_MINUTES", default=15, cast=int)
