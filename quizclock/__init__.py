"""QuizClock: timed quizzes with automatic grading and analytics."""
