# schoolshop/data/database.py
from sqlalchemy import create_engine, event
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

from schoolshop.utils.settings import DATABASE_URL, COLLABORATOR_TIMEOUT_SECONDS


def _engine_kwargs(url: str) -> dict:
    if url.startswith("sqlite"):
        kwargs = {"connect_args": {"check_same_thread": False}}
        #baza w pamieci musi byc jednym polaczeniem, inaczej kazda sesja widzi pusta baze
        if ":memory:" in url or url.rstrip("/").endswith("sqlite://"):
            kwargs["poolclass"] = StaticPool
        return kwargs
    return {
        "pool_pre_ping": True,
        "connect_args": {"connect_timeout": COLLABORATOR_TIMEOUT_SECONDS},
    }


engine = create_engine(DATABASE_URL, future=True, **_engine_kwargs(DATABASE_URL))

if DATABASE_URL.startswith("sqlite"):
    # ON DELETE CASCADE w sqlite dziala tylko z wlaczonymi kluczami obcymi
    @event.listens_for(engine, "connect")
    def _enable_sqlite_fk(dbapi_conn, _record):
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


SessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False)

Base = declarative_base()


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_db() -> None:
    # import modeli zeby zarejestrowac je w Base.metadata przed create_all
    import schoolshop.data.models  # noqa: F401

    Base.metadata.create_all(bind=engine)
