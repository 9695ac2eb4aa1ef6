"""Static metadata describing QuizClock."""

APP_NAME = "QuizClock"
APP_VERSION = "0.1"
APP_LICENSE = "MIT License"
APP_ABOUT_TEXT = (
    "QuizClock lets teachers author multiple-choice, true/false and short-answer quizzes "
    "and lets students take them against a countdown, with automatic grading and per-quiz analytics."
)
