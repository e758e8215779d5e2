"""
Configuration de la connexion à la base de données PostgreSQL.
Moteur SQLAlchemy synchrone ; les colonnes DateTime stockent de l'UTC naïf.
"""

from datetime import datetime, timezone

from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base
from sqlalchemy.orm import sessionmaker

from lecturetrack.config import settings


def _connect_args(url: str) -> dict:
    """Borne la durée des requêtes côté serveur (store I/O jamais bloquant indéfiniment)."""
    if url.startswith("postgresql"):
        return {"options": f"-c statement_timeout={settings.DB_STATEMENT_TIMEOUT_MS}"}
    return {}


engine = create_engine(
    settings.DATABASE_URL,
    connect_args=_connect_args(settings.DATABASE_URL),
    pool_pre_ping=True,
)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


def get_db():
    """Dépendance FastAPI : fournit une session BDD et la ferme après usage."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def utcnow() -> datetime:
    """Horodatage UTC naïf, format de stockage de toutes les colonnes DateTime."""
    return datetime.now(timezone.utc).replace(tzinfo=None)
