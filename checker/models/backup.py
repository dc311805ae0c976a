"""
Modèle SQLAlchemy pour le journal des sauvegardes (export, rapport, purge).
"""

import uuid
from sqlalchemy import BigInteger, Column, String
from sqlalchemy.dialects.postgresql import UUID

from checker.database import Base


class Backup(Base):
    __tablename__ = "backups"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    timestamp = Column(BigInteger, nullable=False)
    type = Column(String(20), nullable=False)  # export, report, trim
