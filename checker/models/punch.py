"""
Modèle SQLAlchemy pour les pointages (entrée / sortie).

Append-only : un pointage n'est jamais modifié après création. Une correction
est toujours un nouveau pointage (admin_* ou sys_*). Seule la purge de rétention
supprime des lignes.
"""

import uuid
from sqlalchemy import BigInteger, Boolean, Column, ForeignKey, String, text
from sqlalchemy.dialects.postgresql import UUID

from checker.database import Base

EPOCH_MS_NOW = text("(extract(epoch from now()) * 1000)::bigint")


class Punch(Base):
    """Pointage horodaté : checkin, checkout, sys_* ou admin_*."""
    __tablename__ = "punches"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)

    type = Column(String(20), nullable=False)                    # Voir CheckActionType
    timestamp = Column(BigInteger, nullable=False, index=True)   # Horloge de la borne (epoch ms)
    # Horloge serveur attribuée par PostgreSQL à l'insertion, fait foi pour l'ordre
    server_created_at = Column(BigInteger, server_default=EPOCH_MS_NOW)

    is_admin_generated = Column(Boolean, default=False)
    is_system_generated = Column(Boolean, default=False)
    device = Column(String(20), nullable=True)                   # Empreinte courte de la borne


# Plus récent d'abord : horloge serveur (pointages sans horloge serveur en dernier), puis horloge de la borne
PUNCH_NEWEST_FIRST = (Punch.server_created_at.desc().nulls_last(), Punch.timestamp.desc())
