import logging
from churchflow.database import engine
from churchflow.logging_config import configure_logging
from churchflow.models import Base

logger = logging.getLogger(__name__)


def create_db_tables():
    # Create all tables defined in models (if they don't already exist)
    Base.metadata.create_all(bind=engine)
    logger.info("Tables created (if not already existing): %s", engine.url)


if __name__ == "__main__":
    configure_logging()
    create_db_tables()
