from fastapi import FastAPI

from taskflow.config import settings
from taskflow.errors import install_error_handlers
from taskflow.logging_setup import setup_logging
from taskflow.routes.auth import router as auth_router
from taskflow.routes.health import router as health_router
from taskflow.routes.profiles import router as profiles_router
from taskflow.routes.tasks import router as tasks_router

def create_app() -> FastAPI:
    setup_logging(level=settings.log_level, log_dir=settings.log_dir)

    app = FastAPI(title="taskflow-api", version="0.1.0")
    install_error_handlers(app)
    app.include_router(health_router)
    app.include_router(auth_router)
    app.include_router(profiles_router)
    app.include_router(tasks_router)
    return app

app = create_app()
