from sqlmodel import create_engine, Session, SQLModel
from fwaudit.core.config import get_settings

_engine = None


def get_engine():
    global _engine
    if _engine is None:
        settings = get_settings()
        kwargs = {"echo": settings.environment == "development", "pool_pre_ping": True}
        if settings.database_url.startswith("sqlite"):
            kwargs["connect_args"] = {"check_same_thread": False}
        else:
            kwargs.update(pool_size=10, max_overflow=20)
        _engine = create_engine(settings.database_url, **kwargs)
    return _engine


def get_session():
    with Session(get_engine()) as session:
        yield session


def create_all_tables():
    SQLModel.metadata.create_all(get_engine())
