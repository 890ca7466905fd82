import logging
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from app.core.config import settings

logger = logging.getLogger("app.db.session")
if not logging.getLogger().handlers:
    logging.basicConfig(level=logging.INFO)

if not settings.DATABASE_URL:
    logger.error("DATABASE_URL is not configured")
    raise RuntimeError("DATABASE_URL is not configured. Set it in the environment or .env file.")

_is_sqlite = settings.DATABASE_URL.startswith("sqlite")
logger.info("Question bank database: %s", "sqlite" if _is_sqlite else "postgresql")

# sync routes run in FastAPI's threadpool, so sqlite connections cross threads
engine = create_engine(
    settings.DATABASE_URL,
    pool_pre_ping=True,
    connect_args={"check_same_thread": False} if _is_sqlite else {},
)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db():
    """Request-scoped session; routes commit their own writes."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
