"""
Modèle SQLAlchemy pour les départements.
Le département VISITOR est créé à la demande lors du premier enregistrement visiteur.
"""

import uuid
from sqlalchemy import Column, String
from sqlalchemy.dialects.postgresql import UUID

from checker.database import Base


class Department(Base):
    __tablename__ = "departments"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name = Column(String(255), nullable=False)
    department_id = Column(String(50), unique=True, nullable=False)  # Code métier, ex: "VISITOR"
