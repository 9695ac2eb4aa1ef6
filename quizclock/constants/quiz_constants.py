"""Quiz-related constants shared across the core and server layers."""

DEFAULT_TIME_LIMIT_MINUTES: int = 10
TIMER_TICK_SECONDS: float = 1.0
MIN_MULTIPLE_CHOICE_OPTIONS: int = 2
MAX_MULTIPLE_CHOICE_OPTIONS: int = 8

# Inclusive score ranges used by the results histogram.
SCORE_BUCKETS: tuple[tuple[str, int, int], ...] = (
    ("0-20", 0, 20),
    ("21-40", 21, 40),
    ("41-60", 41, 60),
    ("61-80", 61, 80),
    ("81-100", 81, 100),
)

STORAGE_COLLECTION_QUIZZES: str = "quizzes"
STORAGE_COLLECTION_ATTEMPTS: str = "quiz_attempts"
