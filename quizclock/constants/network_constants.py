"""Network configuration constants for the quiz application."""

DEFAULT_HOST: str = "0.0.0.0"
DEFAULT_PORT: int = 8000
IDENTITY_COOKIE: str = "quizclock_user"
IDENTITY_COOKIE_MAX_AGE_SECONDS: int = 60 * 60 * 12
