from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from aisentinel.core.config import settings


def _engine_kwargs(url: str) -> dict:
    if url.startswith("sqlite"):
        return {"connect_args": {"check_same_thread": False}}
    return {"pool_pre_ping": True}


engine = create_engine(settings.SQLALCHEMY_URL, **_engine_kwargs(settings.SQLALCHEMY_URL))
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
