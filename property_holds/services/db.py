from __future__ import annotations

from contextlib import contextmanager
from functools import lru_cache
from pathlib import Path
from typing import Generator

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import Session, sessionmaker

from property_holds.core.config import get_settings
from property_holds.models.base import Base
from property_holds.models.hold import PropertyHold  # noqa: F401
from property_holds.models.notification import Notification  # noqa: F401
from property_holds.models.property import Property  # noqa: F401
from property_holds.models.system_config import SystemConfig  # noqa: F401
from property_holds.models.user import User  # noqa: F401
from property_holds.services.system_config import SystemConfigService


def build_engine(database_url: str) -> Engine:
    url = make_url(database_url)
    is_sqlite = url.drivername.startswith("sqlite")

    if is_sqlite and url.database and url.database != ":memory:":
        db_path = Path(url.database).expanduser()
        if db_path.parent:
            db_path.parent.mkdir(parents=True, exist_ok=True)
        # Rebuild URL so SQLAlchemy can handle relative paths nicely
        database_url = f"sqlite:///{db_path}"

    return create_engine(
        database_url,
        echo=False,
        pool_pre_ping=not is_sqlite,
        connect_args={"check_same_thread": False, "timeout": 30} if is_sqlite else {},
    )


def build_sessionmaker(engine: Engine) -> sessionmaker[Session]:
    return sessionmaker(bind=engine, autocommit=False, autoflush=False, expire_on_commit=False)


@lru_cache
def get_engine() -> Engine:
    return build_engine(get_settings().database_url)


@lru_cache
def get_sessionmaker() -> sessionmaker[Session]:
    return build_sessionmaker(get_engine())


def init_db(engine: Engine | None = None) -> None:
    engine = engine or get_engine()
    Base.metadata.create_all(bind=engine)
    with db_session(build_sessionmaker(engine)) as session:
        SystemConfigService(session).seed_defaults()


@contextmanager
def db_session(factory: sessionmaker[Session] | None = None) -> Generator[Session, None, None]:
    session: Session = (factory or get_sessionmaker())()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def get_db() -> Generator[Session, None, None]:
    with db_session() as session:
        yield session
