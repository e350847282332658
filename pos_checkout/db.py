from sqlalchemy import create_engine, event
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

from .core.config import settings

# Base para modelos (lo importa main)
Base = declarative_base()


def make_engine(url: str):
    if not url.startswith("sqlite"):
        return create_engine(url, pool_pre_ping=True)

    kwargs = {"connect_args": {"check_same_thread": False, "timeout": 60}}
    if url in ("sqlite://", "sqlite:///:memory:"):
        # una sola conexion compartida, si no cada sesion ve una BD vacia
        kwargs["poolclass"] = StaticPool
    eng = create_engine(url, **kwargs)

    # PRAGMAs por conexion
    @event.listens_for(eng, "connect")
    def _on_connect(dbapi_conn, _):
        cur = dbapi_conn.cursor()
        try:
            cur.execute("PRAGMA busy_timeout=60000;")
            cur.execute("PRAGMA foreign_keys=ON;")
        finally:
            cur.close()

    return eng


engine = make_engine(settings.database_url)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def init_db(bind=None):
    # IMPORTA MODELOS antes de create_all
    from .models import catalog as _catalog_models  # noqa: F401
    from .models import coupon as _coupon_models  # noqa: F401
    from .models import sale as _sale_models  # noqa: F401

    Base.metadata.create_all(bind=bind or engine)


# Dependencia FastAPI
def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
