"""
Configuration de la connexion à la base de données PostgreSQL.

Une borne reste allumée des jours : les connexions mortes sont détectées
(pool_pre_ping) et une requête en échec ne laisse jamais de transaction ouverte.
"""

from sqlalchemy import create_engine
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from checker.config import settings

engine = create_engine(settings.DATABASE_URL, pool_pre_ping=True)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


def get_db():
    """Dépendance FastAPI : fournit une session BDD, annule la transaction en cas d'erreur et la ferme."""
    db: Session = SessionLocal()
    try:
        yield db
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()
