"""
Modulo de conexion a la base de datos (SQLAlchemy).

Crea el engine a partir de settings.DATABASE_URL y expone:
- Base: clase declarativa de la que heredan todas las entidades.
- SessionLocal: fabrica de sesiones.
- get_db(): dependencia de FastAPI que abre una sesion por peticion y la
  cierra al terminar, incluso si el endpoint lanza una excepcion.
- init_db(): crea las tablas que falten (se llama al arrancar la app).

En tests se sobreescribe get_db con app.dependency_overrides para usar una
base SQLite en memoria.
"""

from sqlalchemy import create_engine
from sqlalchemy.orm import DeclarativeBase, sessionmaker

from spreadmarket.config import settings


class Base(DeclarativeBase):
    pass


def make_engine(url: str):
    # SQLite no permite por defecto usar una conexion desde otro hilo, y
    # FastAPI ejecuta los endpoints sincronos en un threadpool.
    connect_args = {"check_same_thread": False} if url.startswith("sqlite") else {}
    return create_engine(url, connect_args=connect_args)


engine = make_engine(settings.DATABASE_URL)

# expire_on_commit=False: los objetos siguen siendo legibles despues del
# commit, asi los endpoints pueden serializarlos sin volver a consultar.
SessionLocal = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_db(bind=None) -> None:
    # Importamos las entidades para que queden registradas en Base.metadata
    from spreadmarket.models import entities  # noqa: F401

    Base.metadata.create_all(bind=bind or engine)
