"""FastAPI server exposing the quiz catalog and attempt lifecycle."""

from __future__ import annotations

from contextlib import asynccontextmanager
import logging
from threading import Thread
from typing import Callable

from fastapi import Depends, FastAPI, Request, Response
from fastapi.responses import JSONResponse, PlainTextResponse
import uvicorn

from quizclock.constants.about import APP_ABOUT_TEXT, APP_LICENSE, APP_NAME, APP_VERSION
from quizclock.constants.network_constants import (
    DEFAULT_HOST,
    DEFAULT_PORT,
    IDENTITY_COOKIE,
    IDENTITY_COOKIE_MAX_AGE_SECONDS,
)
from quizclock.core.attempt_controller import AttemptController
from quizclock.core.errors import (
    InvalidQuizDefinitionError,
    NotAuthenticatedError,
    PermissionDeniedError,
    QuizError,
    QuizNotFoundError,
    StorageUnavailableError,
)
from quizclock.core.models import Attempt, MultipleChoiceQuestion, Quiz
from quizclock.core.question_markdown import question_renderer
from quizclock.core.quiz_exporter import serialize_quiz
from quizclock.core.quiz_importer import QuizImportError, parse_quiz_text
from quizclock.core.records import attempt_to_record, quiz_to_record
from quizclock.core.services.analytics import (
    attempt_counts_by_quiz,
    feedback_message,
    letter_grade,
    student_overview,
    summarize_quiz,
)
from quizclock.core.services.catalog_store import CatalogStore
from quizclock.core.services.countdown import format_remaining
from quizclock.core.services.identity import IdentityProvider, Role, UserIdentity
from quizclock.server.schemas import (
    AnswerPayload,
    LoginPayload,
    QuizPayload,
    QuizTextPayload,
    QuizUpdatePayload,
    SubmitPayload,
)

logger = logging.getLogger(__name__)


def _identity_view(identity: UserIdentity) -> dict[str, object]:
    return {
        "id": identity.id,
        "name": identity.name,
        "email": identity.email,
        "role": identity.role.value,
    }


def _student_quiz_view(quiz: Quiz) -> dict[str, object]:
    """Quiz as a student may see it: rendered text, no correct answers."""
    questions = []
    for question in quiz.questions:
        entry: dict[str, object] = {
            "id": question.id,
            "question_type": question.question_type.value,
            "points": question.points,
            "text": question.text,
        }
        if isinstance(question, MultipleChoiceQuestion):
            entry["options"] = list(question.options)
        entry.update(question_renderer.render_question(question))
        questions.append(entry)
    return {
        "id": quiz.id,
        "title": quiz.title,
        "description": quiz.description,
        "time_limit_minutes": quiz.time_limit_minutes,
        "total_points": quiz.total_points(),
        "questions": questions,
    }


def _attempt_view(attempt: Attempt, manager: AttemptController) -> dict[str, object]:
    view = attempt_to_record(attempt)
    view["state"] = attempt.state.value
    if attempt.completed:
        view["letter_grade"] = letter_grade(attempt.score)
        view["feedback"] = feedback_message(attempt.score)
        view["time_taken_seconds"] = attempt.time_taken_seconds()
    else:
        remaining = manager.remaining_seconds(attempt.id)
        view["remaining_seconds"] = remaining
        view["remaining_display"] = format_remaining(remaining) if remaining is not None else None
        view["buffered_answers"] = [
            {"question_id": a.question_id, "value": a.value} for a in manager.buffered_answers(attempt.id)
        ]
    return view


def _get_dependency(value):
    def dependency():
        return value

    return dependency


def create_api_app(
    controller: AttemptController,
    catalog: CatalogStore,
    identity_provider: IdentityProvider,
) -> FastAPI:
    """Create a FastAPI application wired to the provided services."""

    @asynccontextmanager
    async def lifespan(_: FastAPI):
        yield
        controller.shutdown()

    app = FastAPI(
        title=f"{APP_NAME} API",
        description=APP_ABOUT_TEXT,
        version=APP_VERSION,
        license_info={"name": APP_LICENSE},
        lifespan=lifespan,
    )
    controller_dep = _get_dependency(controller)
    catalog_dep = _get_dependency(catalog)

    @app.exception_handler(QuizError)
    async def handle_quiz_error(_: Request, exc: QuizError) -> JSONResponse:
        return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})

    @app.exception_handler(StorageUnavailableError)
    async def handle_storage_error(_: Request, exc: StorageUnavailableError) -> JSONResponse:
        logger.error("Request failed, storage unavailable: %s", exc)
        return JSONResponse(status_code=503, content={"detail": str(exc)})

    def current_user(request: Request) -> UserIdentity:
        user_id = request.cookies.get(IDENTITY_COOKIE)
        identity = identity_provider.get(user_id) if user_id else None
        if identity is None:
            raise NotAuthenticatedError("Please log in first.")
        return identity

    def require_role(role: Role) -> Callable[..., UserIdentity]:
        def dependency(user: UserIdentity = Depends(current_user)) -> UserIdentity:
            if user.role is not role:
                raise PermissionDeniedError(f"Only {role.value}s can do this.")
            return user

        return dependency

    teacher_only = require_role(Role.TEACHER)
    student_only = require_role(Role.STUDENT)

    def owned_quiz(quiz_id: str, teacher: UserIdentity, store: CatalogStore) -> Quiz:
        quiz = store.get(quiz_id)
        if quiz is None:
            raise QuizNotFoundError(quiz_id)
        if quiz.teacher_id != teacher.id:
            raise PermissionDeniedError("You can only manage your own quizzes.")
        return quiz

    def own_attempt(attempt_id: str, student: UserIdentity, manager: AttemptController) -> Attempt:
        attempt = manager.get_attempt(attempt_id)
        if attempt.student_id != student.id:
            raise PermissionDeniedError("This attempt belongs to another student.")
        return attempt

    # --- Identity ---

    @app.post("/login")
    def login(payload: LoginPayload, response: Response) -> dict[str, object]:
        identity = identity_provider.authenticate(payload.email, payload.password, payload.role)
        if identity is None:
            raise NotAuthenticatedError("Invalid email, password or role.")
        response.set_cookie(
            key=IDENTITY_COOKIE,
            value=identity.id,
            max_age=IDENTITY_COOKIE_MAX_AGE_SECONDS,
            samesite="lax",
            httponly=True,
        )
        logger.info("User %s logged in as %s", identity.id, identity.role.value)
        return _identity_view(identity)

    @app.post("/logout", status_code=204)
    def logout() -> Response:
        response = Response(status_code=204)
        response.delete_cookie(IDENTITY_COOKIE)
        return response

    @app.get("/me")
    def get_me(user: UserIdentity = Depends(current_user)) -> dict[str, object]:
        return _identity_view(user)

    # --- Quiz catalog ---

    @app.get("/quizzes")
    def list_quizzes(
        user: UserIdentity = Depends(current_user),
        store: CatalogStore = Depends(catalog_dep),
        manager: AttemptController = Depends(controller_dep),
    ) -> list[dict[str, object]]:
        if user.role is Role.STUDENT:
            return [_student_quiz_view(quiz) for quiz in store.list_published()]
        quizzes = store.list_by_teacher(user.id)
        attempts = [a for quiz in quizzes for a in manager.list_attempts_by_quiz(quiz.id)]
        counts = attempt_counts_by_quiz(quizzes, attempts)
        views = []
        for quiz in quizzes:
            view = quiz_to_record(quiz)
            view["attempt_count"] = counts[quiz.id]
            views.append(view)
        return views

    @app.post("/quizzes", status_code=201)
    def create_quiz(
        payload: QuizPayload,
        teacher: UserIdentity = Depends(teacher_only),
        store: CatalogStore = Depends(catalog_dep),
    ) -> dict[str, object]:
        return quiz_to_record(store.create(payload.to_quiz(teacher.id)))

    @app.post("/quizzes/import", status_code=201)
    def import_quiz(
        payload: QuizTextPayload,
        teacher: UserIdentity = Depends(teacher_only),
        store: CatalogStore = Depends(catalog_dep),
    ) -> dict[str, object]:
        try:
            quiz = parse_quiz_text(payload.text, teacher.id)
        except QuizImportError as exc:
            raise InvalidQuizDefinitionError(str(exc)) from exc
        return quiz_to_record(store.create(quiz))

    @app.get("/quizzes/{quiz_id}/export", response_class=PlainTextResponse)
    def export_quiz(
        quiz_id: str,
        teacher: UserIdentity = Depends(teacher_only),
        store: CatalogStore = Depends(catalog_dep),
    ) -> str:
        quiz = owned_quiz(quiz_id, teacher, store)
        if not quiz.questions:
            raise InvalidQuizDefinitionError("Cannot export an empty quiz.")
        return serialize_quiz(quiz)

    @app.get("/quizzes/{quiz_id}")
    def get_quiz(
        quiz_id: str,
        user: UserIdentity = Depends(current_user),
        manager: AttemptController = Depends(controller_dep),
        store: CatalogStore = Depends(catalog_dep),
    ) -> dict[str, object]:
        if user.role is Role.TEACHER:
            return quiz_to_record(owned_quiz(quiz_id, user, store))
        quiz = manager.get_quiz(quiz_id)
        if not quiz.is_published:
            raise QuizNotFoundError(quiz_id)
        return _student_quiz_view(quiz)

    @app.patch("/quizzes/{quiz_id}")
    def update_quiz(
        quiz_id: str,
        payload: QuizUpdatePayload,
        teacher: UserIdentity = Depends(teacher_only),
        store: CatalogStore = Depends(catalog_dep),
    ) -> dict[str, object]:
        owned_quiz(quiz_id, teacher, store)
        return quiz_to_record(store.update(quiz_id, **payload.to_changes()))

    @app.delete("/quizzes/{quiz_id}", status_code=204)
    def delete_quiz(
        quiz_id: str,
        teacher: UserIdentity = Depends(teacher_only),
        store: CatalogStore = Depends(catalog_dep),
        manager: AttemptController = Depends(controller_dep),
    ) -> Response:
        owned_quiz(quiz_id, teacher, store)
        manager.delete_quiz(quiz_id)
        return Response(status_code=204)

    @app.get("/quizzes/{quiz_id}/attempts")
    def list_quiz_attempts(
        quiz_id: str,
        teacher: UserIdentity = Depends(teacher_only),
        store: CatalogStore = Depends(catalog_dep),
        manager: AttemptController = Depends(controller_dep),
    ) -> list[dict[str, object]]:
        owned_quiz(quiz_id, teacher, store)
        return [_attempt_view(a, manager) for a in manager.list_attempts_by_quiz(quiz_id)]

    @app.get("/quizzes/{quiz_id}/analytics")
    def get_quiz_analytics(
        quiz_id: str,
        teacher: UserIdentity = Depends(teacher_only),
        store: CatalogStore = Depends(catalog_dep),
        manager: AttemptController = Depends(controller_dep),
    ) -> dict[str, object]:
        quiz = owned_quiz(quiz_id, teacher, store)
        summary = summarize_quiz(quiz, manager.list_attempts_by_quiz(quiz_id))
        return {
            "quiz_id": summary.quiz_id,
            "total_attempts": summary.total_attempts,
            "average_score": summary.average_score,
            "highest_score": summary.highest_score,
            "lowest_score": summary.lowest_score,
            "average_time_minutes": summary.average_time_minutes,
            "score_distribution": summary.score_distribution,
            "score_distribution_percent": summary.score_distribution_percent,
            "question_stats": [
                {
                    "question_id": stat.question_id,
                    "question_text": stat.question_text,
                    "total_answers": stat.total_answers,
                    "correct_answers": stat.correct_answers,
                    "incorrect_answers": stat.incorrect_answers,
                    "percent_correct": stat.percent_correct,
                }
                for stat in summary.question_stats
            ],
        }

    # --- Attempts ---

    @app.post("/quizzes/{quiz_id}/attempts", status_code=201)
    def start_attempt(
        quiz_id: str,
        student: UserIdentity = Depends(student_only),
        manager: AttemptController = Depends(controller_dep),
    ) -> dict[str, object]:
        attempt = manager.start(quiz_id, student.id)
        return _attempt_view(attempt, manager)

    @app.get("/attempts/{attempt_id}")
    def get_attempt(
        attempt_id: str,
        user: UserIdentity = Depends(current_user),
        store: CatalogStore = Depends(catalog_dep),
        manager: AttemptController = Depends(controller_dep),
    ) -> dict[str, object]:
        if user.role is Role.STUDENT:
            attempt = own_attempt(attempt_id, user, manager)
        else:
            attempt = manager.get_attempt(attempt_id)
            owned_quiz(attempt.quiz_id, user, store)
        return _attempt_view(attempt, manager)

    @app.put("/attempts/{attempt_id}/answers/{question_id}")
    def record_answer(
        attempt_id: str,
        question_id: str,
        payload: AnswerPayload,
        student: UserIdentity = Depends(student_only),
        manager: AttemptController = Depends(controller_dep),
    ) -> dict[str, object]:
        own_attempt(attempt_id, student, manager)
        is_new = manager.record_answer(attempt_id, question_id, payload.value)
        return {
            "question_id": question_id,
            "is_new": is_new,
            "remaining_seconds": manager.remaining_seconds(attempt_id),
        }

    @app.post("/attempts/{attempt_id}/submit")
    def submit_attempt(
        attempt_id: str,
        payload: SubmitPayload | None = None,
        student: UserIdentity = Depends(student_only),
        manager: AttemptController = Depends(controller_dep),
    ) -> dict[str, object]:
        own_attempt(attempt_id, student, manager)
        answers = payload.to_answers() if payload is not None else None
        return _attempt_view(manager.submit(attempt_id, answers), manager)

    @app.delete("/attempts/{attempt_id}/session", status_code=204)
    def end_attempt_session(
        attempt_id: str,
        student: UserIdentity = Depends(student_only),
        manager: AttemptController = Depends(controller_dep),
    ) -> Response:
        own_attempt(attempt_id, student, manager)
        manager.end_session(attempt_id)
        return Response(status_code=204)

    @app.get("/students/me/attempts")
    def list_my_attempts(
        student: UserIdentity = Depends(student_only),
        manager: AttemptController = Depends(controller_dep),
    ) -> list[dict[str, object]]:
        return [_attempt_view(a, manager) for a in manager.list_attempts_by_student(student.id)]

    @app.get("/students/me/overview")
    def get_my_overview(
        student: UserIdentity = Depends(student_only),
        store: CatalogStore = Depends(catalog_dep),
        manager: AttemptController = Depends(controller_dep),
    ) -> dict[str, object]:
        overview = student_overview(
            student.id, store.list_published(), manager.list_attempts_by_student(student.id)
        )
        return {
            "completed": [
                {
                    "quiz_id": quiz.id,
                    "title": quiz.title,
                    "latest_attempt_id": overview.latest_attempts[quiz.id].id,
                    "score": overview.latest_attempts[quiz.id].score,
                }
                for quiz in overview.completed_quizzes
            ],
            "pending": [
                {"quiz_id": quiz.id, "title": quiz.title, "time_limit_minutes": quiz.time_limit_minutes}
                for quiz in overview.pending_quizzes
            ],
        }

    return app


def start_api_server(
    app: FastAPI,
    host: str = DEFAULT_HOST,
    port: int = DEFAULT_PORT,
    log_level: str = "info",
) -> Thread:
    """Start the FastAPI server in a background daemon thread."""
    config = uvicorn.Config(app=app, host=host, port=port, log_level=log_level.lower())
    server = uvicorn.Server(config)

    def run_server() -> None:
        server.run()

    thread = Thread(target=run_server, name="QuizApiServer", daemon=True)
    thread.start()
    return thread
