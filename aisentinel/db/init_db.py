from aisentinel.db.base import Base
from aisentinel.db.session import engine as default_engine
from aisentinel.models import models  # noqa: F401  registers tables on Base
from aisentinel.core.logger import logger


def init_db(engine=None):
    engine = engine or default_engine
    logger.info("DB INIT STARTED")
    Base.metadata.create_all(bind=engine)
    logger.info("DB TABLES CREATED")
