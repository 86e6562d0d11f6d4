# backend/database.py
from sqlalchemy import create_engine, event
from sqlalchemy.orm import declarative_base, sessionmaker

from config import settings

# 1. Adres bazy z konfiguracji (Azure / lokalnie SQLite)
SQLALCHEMY_DATABASE_URL = settings.DATABASE_URL

# 2. SQLAlchemy wymaga schematu postgresql:// zamiast postgres://
if SQLALCHEMY_DATABASE_URL.startswith("postgres://"):
    SQLALCHEMY_DATABASE_URL = SQLALCHEMY_DATABASE_URL.replace("postgres://", "postgresql://", 1)


def make_engine(url: str, **kwargs):
    is_sqlite = url.startswith("sqlite")
    connect_args = {"check_same_thread": False} if is_sqlite else {}
    eng = create_engine(url, connect_args=connect_args, **kwargs)

    if is_sqlite:
        @event.listens_for(eng, "connect")
        def _sqlite_on_connect(dbapi_connection, connection_record):
            # Let SQLAlchemy emit BEGIN itself so SAVEPOINTs nest correctly
            dbapi_connection.isolation_level = None
            # SQLite only honours ON DELETE CASCADE with foreign keys switched on
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

        @event.listens_for(eng, "begin")
        def _sqlite_on_begin(conn):
            conn.exec_driver_sql("BEGIN")

    return eng


engine = make_engine(SQLALCHEMY_DATABASE_URL)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()

def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()

def init_db():
    # Register every model on Base.metadata before creating tables
    import models.users, models.category, models.product, models.movement, models.alert, models.log  # noqa: F401
    Base.metadata.create_all(bind=engine)
