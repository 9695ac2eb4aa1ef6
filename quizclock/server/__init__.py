"""HTTP surface of the quiz application."""

from .api_server import create_api_app, start_api_server

__all__ = ["create_api_app", "start_api_server"]
