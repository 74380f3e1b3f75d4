import logging

from sqlmodel import Session

from app.config import settings
from app.database import engine, init_db
from app.logging_config import configure_logging
from app.services.order_ledger import expire_stale_orders

logger = logging.getLogger(__name__)


def expire_unpaid_orders() -> int:
    with Session(engine) as session:
        return expire_stale_orders(session, settings.STALE_ORDER_HOURS)


if __name__ == "__main__":
    configure_logging()
    init_db(create_tables=False)
    count = expire_unpaid_orders()
    logger.info(f"Order expiry sweep done: {count} orders failed")
