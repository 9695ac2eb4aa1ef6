"""Application entry point for QuizClock."""

from __future__ import annotations

from dataclasses import dataclass
import logging

from fastapi import FastAPI

from quizclock.config import Settings, get_settings
from quizclock.core.attempt_controller import AttemptController
from quizclock.core.sample_data import seed_catalog
from quizclock.core.services.attempt_store import AttemptStore
from quizclock.core.services.catalog_store import CatalogStore
from quizclock.core.services.identity import DEMO_TEACHER_ID, IdentityProvider, Role
from quizclock.core.services.storage import JsonFileStorage, MemoryStorage, Storage
from quizclock.server.api_server import create_api_app, start_api_server
from quizclock.utils.logging_config import configure_logging

logger = logging.getLogger("quizclock")


@dataclass(slots=True)
class Application:
    """Everything a running process owns, built once at startup."""

    app: FastAPI
    controller: AttemptController
    catalog: CatalogStore
    attempts: AttemptStore
    identity_provider: IdentityProvider


def _make_storage(settings: Settings) -> Storage:
    if settings.data_dir is None:
        logger.info("No data directory configured; using in-memory storage")
        return MemoryStorage()
    logger.info("Storing quizzes and attempts in %s", settings.data_dir)
    return JsonFileStorage(settings.data_dir)


def build_application(settings: Settings) -> Application:
    storage = _make_storage(settings)
    attempts = AttemptStore(storage)
    catalog = CatalogStore(storage, attempts)
    identity_provider = IdentityProvider.with_demo_accounts()

    if settings.seed_sample_data:
        teacher = identity_provider.get(DEMO_TEACHER_ID)
        if teacher is not None and teacher.role is Role.TEACHER:
            seed_catalog(catalog, teacher.id)

    controller = AttemptController(
        catalog,
        attempts,
        tick_seconds=settings.timer_tick_seconds,
        auto_submit=settings.auto_submit,
    )
    app = create_api_app(controller, catalog, identity_provider)
    return Application(
        app=app,
        controller=controller,
        catalog=catalog,
        attempts=attempts,
        identity_provider=identity_provider,
    )


def main() -> None:
    """Initialize logging, build the services and serve the API until interrupted."""
    settings = get_settings()
    configure_logging(settings.log_level)
    logger.info("Starting QuizClock…")

    application = build_application(settings)
    server_thread = start_api_server(
        application.app, host=settings.host, port=settings.port, log_level=settings.log_level
    )
    logger.info("API available at http://%s:%s/", settings.host, settings.port)
    try:
        server_thread.join()
    except KeyboardInterrupt:
        logger.info("Shutting down")
    finally:
        application.controller.shutdown()


if __name__ == "__main__":
    main()
