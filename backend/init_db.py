from database import engine, Base
from config.settings import STAGING_DIR, MEDIA_ROOT, STORAGE_BACKEND
import models  # noqa: F401  (registers tables on Base.metadata)
import logging

logger = logging.getLogger(__name__)


def init_database():
    """Create missing tables and the working directories"""
    Base.metadata.create_all(bind=engine)

    STAGING_DIR.mkdir(parents=True, exist_ok=True)
    if STORAGE_BACKEND == "local":
        MEDIA_ROOT.mkdir(parents=True, exist_ok=True)

    logger.info(f"Database initialized: {engine.url.render_as_string(hide_password=True)}")


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    init_database()
