"""Static configuration values shared across the application."""
