import os
import sys
import logging
from contextlib import asynccontextmanager

# Ensure this directory is in the path for uvicorn and other runners
current_dir = os.path.dirname(os.path.abspath(__file__))
if current_dir not in sys.path:
    sys.path.append(current_dir)

os.environ["PROTOCOL_BUFFERS_PYTHON_IMPLEMENTATION"] = "python"
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware

from config import APP_NAME, CORS_ORIGINS, LOG_LEVEL
from database import init_db
from errors import FocusFlowError
from routes.ai_routes import router as ai_router
from routes.analytics_routes import router as analytics_router
from routes.automation_routes import router as automation_router
from routes.commitment_routes import router as commitment_router
from routes.goal_routes import router as goal_router
from routes.pomodoro_routes import router as pomodoro_router
from routes.project_routes import router as project_router
from routes.target_routes import router as target_router
from routes.task_routes import router as task_router

logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    yield


app = FastAPI(title=APP_NAME, lifespan=lifespan)


@app.exception_handler(FocusFlowError)
async def focusflow_error_handler(request: Request, exc: FocusFlowError):
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message, **exc.details})


@app.get("/api/v1/health-check")
async def health():
    return {"status": "ok", "message": f"{APP_NAME} backend is alive!"}


app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

for router in (
    task_router,
    project_router,
    target_router,
    goal_router,
    commitment_router,
    automation_router,
    pomodoro_router,
    analytics_router,
    ai_router,
):
    app.include_router(router)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("main:app", host="0.0.0.0", port=8000, reload=True)
