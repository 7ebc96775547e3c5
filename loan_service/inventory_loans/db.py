from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base
from sqlalchemy.pool import StaticPool
from inventory_loans.core.config import settings

Base = declarative_base()


def build_engine(database_url: str = None, echo: bool = None) -> Engine:
    """Crear el engine; una sqlite en memoria se comparte entre conexiones"""
    url = database_url or settings.database_url
    echo = settings.database_echo if echo is None else echo
    if url.startswith("sqlite"):
        kwargs = {"connect_args": {"check_same_thread": False}}
        if url in ("sqlite://", "sqlite:///:memory:"):
            kwargs["poolclass"] = StaticPool
        return create_engine(url, echo=echo, **kwargs)
    return create_engine(url, echo=echo)


engine = build_engine()


def create_tables(bind: Engine = None):
    # Registrar todos los modelos antes de crear el esquema
    import inventory_loans.models  # noqa: F401
    Base.metadata.create_all(bind=bind or engine)

