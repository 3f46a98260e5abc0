# easy_ops/core/database.py
from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, declarative_base

from easy_ops.core.config import settings


def build_engine(url: str, echo: bool = False, **kwargs) -> Engine:
    """Create an engine; SQLite gets thread sharing, enforced foreign keys and working SAVEPOINTs."""
    if url.startswith("sqlite"):
        connect_args = kwargs.pop("connect_args", {})
        connect_args.setdefault("check_same_thread", False)
        eng = create_engine(url, echo=echo, connect_args=connect_args, **kwargs)

        @event.listens_for(eng, "connect")
        def _configure_sqlite(dbapi_connection, connection_record):
            # let SQLAlchemy emit BEGIN itself so nested transactions behave
            dbapi_connection.isolation_level = None
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

        @event.listens_for(eng, "begin")
        def _begin_sqlite(conn):
            conn.exec_driver_sql("BEGIN")

        return eng

    return create_engine(
        url,
        echo=echo,
        pool_pre_ping=True,
        pool_recycle=300,
        **kwargs
    )


engine = build_engine(settings.DATABASE_URL, echo=settings.SQL_ECHO)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
