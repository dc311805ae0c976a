"""
Modèles SQLAlchemy pour les exercices d'évacuation (appel incendie).
"""

import uuid
from sqlalchemy import BigInteger, Column, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID

from checker.database import Base


class FireDrillCheck(Base):
    """Une personne comptée (ou décomptée) lors d'un exercice, 1 ligne par personne et par exercice."""
    __tablename__ = "fire_drill_checks"
    __table_args__ = (UniqueConstraint("drill_id", "user_id", name="uq_fire_drill_check"),)

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    drill_id = Column(String(20), nullable=False, index=True)   # YYYYMMDD
    user_id = Column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    timestamp = Column(BigInteger, nullable=False)
    status = Column(String(20), nullable=False)                 # checked, unchecked
    accounted_by = Column(String(255), nullable=True)


class FireDrill(Base):
    """Résumé enregistré à la clôture d'un exercice."""
    __tablename__ = "fire_drills"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    drill_id = Column(String(20), nullable=False)
    completed_at = Column(BigInteger, nullable=False)
    total_checked = Column(Integer, nullable=False)
    total_present = Column(Integer, nullable=False)
