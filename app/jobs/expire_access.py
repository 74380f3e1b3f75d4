import logging

from sqlmodel import Session

from app.database import engine, init_db
from app.logging_config import configure_logging
from app.services.access_grant_service import expire_old_grants

logger = logging.getLogger(__name__)


def expire_lapsed_grants() -> int:
    with Session(engine) as session:
        return expire_old_grants(session)


if __name__ == "__main__":
    configure_logging()
    init_db(create_tables=False)
    count = expire_lapsed_grants()
    logger.info(f"Access expiry sweep done: {count} grants expired")
