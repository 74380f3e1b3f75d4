import logging

from sqlmodel import SQLModel, create_engine, Session
from app.config import settings

logger = logging.getLogger(__name__)


def _engine_kwargs(url: str) -> dict:
    if url.startswith("sqlite"):
        return {"connect_args": {"check_same_thread": False}}
    return {
        "pool_pre_ping": True,   # checks dead connections
        "pool_recycle": 1800,    # refresh every 30 min
    }


engine = create_engine(
    settings.database_url,
    echo=False,
    **_engine_kwargs(settings.database_url),
)


def init_db(bind=None, create_tables: bool | None = None):
    """
    Explicit data-layer startup, run once before serving traffic.

    Importing app.models registers every table on SQLModel.metadata.
    Tables are only created here for local runs; other environments
    are migrated with Alembic.
    """
    import app.models  # noqa: F401

    if create_tables is None:
        create_tables = settings.ENV == "local"

    if create_tables:
        SQLModel.metadata.create_all(bind or engine)
        logger.info("Database tables created")


def get_session():
    with Session(engine) as session:
        yield session
