from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, declarative_base
from sqlalchemy.pool import StaticPool

Base = declarative_base()


def create_store_engine(db_url: str, echo: bool = False) -> Engine:
    """
    Create the SQLite engine backing a data store.

    In-memory URLs share a single connection so every session sees the same
    database.
    """
    if db_url.endswith(':memory:') or db_url == 'sqlite://':
        engine = create_engine(
            db_url,
            connect_args={'check_same_thread': False},
            poolclass=StaticPool,
            echo=echo,
        )
    else:
        engine = create_engine(
            db_url,
            connect_args={'check_same_thread': False},
            echo=echo,
            pool_pre_ping=True,  # Verify connections are alive before using
        )
    event.listen(engine, "connect", set_sqlite_pragma)
    return engine


def set_sqlite_pragma(dbapi_conn, connection_record):
    cursor = dbapi_conn.cursor()
    cursor.execute("PRAGMA journal_mode=WAL")
    cursor.execute("PRAGMA synchronous=NORMAL")
    cursor.execute("PRAGMA busy_timeout=5000")  # Wait up to 5s for locks instead of failing immediately
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def init_schema(engine: Engine) -> None:
    """Create all tables for the fixed schema if they do not already exist."""
    # Registers the mapped classes on Base.metadata
    import models  # noqa: F401
    Base.metadata.create_all(engine)


def make_session_factory(engine: Engine) -> sessionmaker:
    """Session factory whose objects stay readable after commit."""
    return sessionmaker(bind=engine, expire_on_commit=False)
