import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from app.routes import auth, test, practice, saved, admin
from app.db.base import Base
from app.db.sessions import engine
from app.core.config import settings
from app.core.exceptions import ExamPrepError

# Import all models to ensure they're registered with Base
import app.models

logger = logging.getLogger(__name__)

# Create tables
Base.metadata.create_all(bind=engine)

app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="Exam preparation platform: timed tests, practice and question bank management"
)

# CORS configuration
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Register routers
app.include_router(auth.router)
app.include_router(practice.router)
app.include_router(test.router)
app.include_router(saved.router)
app.include_router(admin.router)


@app.exception_handler(ExamPrepError)
async def exam_prep_error_handler(request: Request, exc: ExamPrepError):
    logger.warning("%s on %s: %s", type(exc).__name__, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.to_detail()})


@app.on_event("startup")
async def startup_event():
    logger.info("%s v%s starting...", settings.APP_NAME, settings.APP_VERSION)


@app.get("/health")
def health():
    return {"status": "ok"}
