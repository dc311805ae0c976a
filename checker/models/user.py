"""
Modèle SQLAlchemy pour les utilisateurs de la borne (personnel et visiteurs).
Un visiteur se distingue par la présence d'un `purpose`.
"""

import uuid
from sqlalchemy import BigInteger, Boolean, Column, ForeignKey, String
from sqlalchemy.dialects.postgresql import UUID

from checker.database import Base
from checker.timeutils import now_ms


class User(Base):
    __tablename__ = "users"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=True)
    barcode = Column(String(50), unique=True, nullable=False, index=True)  # Code scanné sur le badge
    is_admin = Column(Boolean, default=False)
    is_auth = Column(Boolean, default=False)   # Autorisé à consulter les écrans d'administration
    dept_id = Column(UUID(as_uuid=True), ForeignKey("departments.id"), nullable=True)
    laptop_serial = Column(String(100), nullable=True)  # Visiteurs avec ordinateur portable
    purpose = Column(String(50), nullable=True)         # Motif de visite (NULL = personnel)
    last_login_at = Column(BigInteger, nullable=True)   # Epoch ms
    created_at = Column(BigInteger, default=now_ms)
    server_created_at = Column(BigInteger, default=now_ms)
