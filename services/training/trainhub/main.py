from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from shared.database import get_redis_client
from shared.middleware import (
    configure_request_logging,
    error_envelope_middleware,
    request_id_middleware,
)
from trainhub.config import get_settings
from trainhub.database import init_db
from trainhub.notifications.router import router as notifications_router
from trainhub.progress.router import router as progress_router
from trainhub.quiz.router import router as quiz_router
from trainhub.trainer.router import router as trainer_router


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()
    configure_request_logging(settings.log_level)
    init_db(settings.training_database_url)

    # Redis pool
    app.state.redis = get_redis_client(settings.redis_url)

    yield

    # Shutdown
    await app.state.redis.aclose()


SWAGGER_DESCRIPTION = """\
## Training Progress Service

Owns learner progress for trainings and courses, deterministic quiz
randomization, and the recalculation cascade that runs after a trainer
changes a training's structure.

### Domain Tags

| Tag | Description |
|-----|-------------|
| **Progress** | Watch signals, training progress, course progress (auto-enrollment) |
| **Quizzes** | Per-learner, per-attempt randomized quizzes + grading |
| **Trainer** | Structural edits (mini-trainings, quiz, video) that trigger the cascade |
| **Notifications** | "Training updated" inbox for learners whose completion changed |

### Authentication

All endpoints (except the health check) require a valid JWT Bearer token in
the `Authorization` header.
Token structure: `{"sub": "<user_uuid>", "email": "...", "roles": [...]}`.
Trainer endpoints require the `trainer`, `admin` or `super_admin` role.

### Completion

```
Training: video watched (minimum or 90% of duration) AND quiz passed AND all mini-trainings completed
Course:   every published training completed
```
"""


def create_app() -> FastAPI:
    settings = get_settings()
    app = FastAPI(
        title="TrainHub Training Progress",
        version="0.1.0",
        description=SWAGGER_DESCRIPTION,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        max_age=600,
    )
    app.middleware("http")(request_id_middleware)
    app.middleware("http")(error_envelope_middleware)

    app.include_router(progress_router, prefix="/api/v1")
    app.include_router(quiz_router, prefix="/api/v1")
    app.include_router(trainer_router, prefix="/api/v1")
    app.include_router(notifications_router, prefix="/api/v1")

    @app.get("/health", tags=["Health"])
    async def health() -> dict:
        """Lightweight liveness check. Does not hit the database."""
        return {"status": "ok", "service": "training"}

    return app


app = create_app()
