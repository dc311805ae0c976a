"""
Service métier pour les utilisateurs et les visiteurs.
Création, modification par un administrateur, enregistrement visiteur,
consultation des pointages.
"""

import uuid
import logging
from typing import List, Optional

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from checker.models.department import Department
from checker.models.punch import PUNCH_NEWEST_FIRST, Punch
from checker.models.user import User
from checker.schemas.punch import PunchResponse
from checker.schemas.user import UserCreate, UserResponse, UserUpdate, VisitorCreate
from checker.timeutils import MS_PER_HOUR
from checker.timeutils import now_ms as current_ms

logger = logging.getLogger(__name__)

VISITOR_DEPARTMENT_CODE = "VISITOR"


def _ensure_barcode_free(db: Session, barcode: str) -> None:
    existing = db.execute(
        select(User).where(func.upper(User.barcode) == barcode.upper())
    ).scalar_one_or_none()
    if existing is not None:
        raise ValueError(f"Le badge {barcode} est déjà enregistré.")


def create_user(db: Session, data: UserCreate) -> UserResponse:
    """
    Crée un membre du personnel.
    Lève ValueError si le code badge est déjà utilisé.
    """
    _ensure_barcode_free(db, data.barcode)

    timestamp = current_ms()
    user = User(
        name=data.name,
        email=data.email,
        barcode=data.barcode,
        is_admin=data.is_admin,
        is_auth=False,
        dept_id=data.dept_id,
        last_login_at=timestamp,
        created_at=timestamp,
    )
    db.add(user)
    db.commit()
    db.refresh(user)

    logger.info("Utilisateur créé : %s (%s)", user.name, user.id)
    return UserResponse.model_validate(user)


def list_users(db: Session) -> List[User]:
    """Tous les utilisateurs triés par nom."""
    return db.execute(select(User).order_by(User.name)).scalars().all()


def update_user(db: Session, user_id: uuid.UUID, data: UserUpdate) -> Optional[UserResponse]:
    """Met à jour les champs fournis. Retourne None si l'utilisateur est introuvable."""
    user = db.get(User, user_id)
    if user is None:
        return None

    update_data = data.model_dump(exclude_unset=True)
    for field, value in update_data.items():
        setattr(user, field, value)

    db.commit()
    db.refresh(user)
    return UserResponse.model_validate(user)


def _get_or_create_visitor_department(db: Session) -> Department:
    department = db.execute(
        select(Department).where(Department.department_id == VISITOR_DEPARTMENT_CODE)
    ).scalar_one_or_none()
    if department:
        return department

    department = Department(name="Visiteurs", department_id=VISITOR_DEPARTMENT_CODE)
    db.add(department)
    db.flush()  # obtenir l'ID sans committer
    return department


def register_visitor(db: Session, data: VisitorCreate) -> UserResponse:
    """
    Enregistre un visiteur depuis la borne.

    - Le badge (déjà validé et mis en majuscules par le schéma) doit être libre
    - Le département VISITOR est créé s'il n'existe pas encore
    - L'email est synthétique : <motif>_<timestamp>@visitor
    """
    _ensure_barcode_free(db, data.barcode)

    department = _get_or_create_visitor_department(db)
    timestamp = current_ms()
    purpose_slug = "_".join(data.purpose.lower().split())

    visitor = User(
        name=data.name,
        email=f"{purpose_slug}_{timestamp}@visitor",
        barcode=data.barcode,
        is_admin=False,
        is_auth=False,
        dept_id=department.id,
        created_at=timestamp,
        laptop_serial=data.laptop_serial,
        purpose=data.purpose,
    )
    db.add(visitor)
    db.commit()
    db.refresh(visitor)

    logger.info("Visiteur enregistré : %s (motif : %s)", visitor.name, visitor.purpose)
    return UserResponse.model_validate(visitor)


def list_user_punches(db: Session, user_id: uuid.UUID, limit: int = 20) -> List[PunchResponse]:
    """
    Derniers pointages d'un utilisateur ("mes passages").
    Lève ValueError si l'utilisateur est introuvable.
    """
    if db.get(User, user_id) is None:
        raise ValueError("Utilisateur introuvable.")

    rows = db.execute(
        select(Punch)
        .where(Punch.user_id == user_id)
        .order_by(*PUNCH_NEWEST_FIRST)
        .limit(limit)
    ).scalars().all()
    return [PunchResponse.model_validate(p) for p in rows]


def list_recent_punches(db: Session, hours: int = 24, now_ms: Optional[int] = None) -> List[PunchResponse]:
    """Pointages des dernières `hours` heures, du plus récent au plus ancien."""
    if now_ms is None:
        now_ms = current_ms()
    since = now_ms - hours * MS_PER_HOUR

    rows = db.execute(
        select(Punch)
        .where(Punch.timestamp >= since)
        .order_by(*PUNCH_NEWEST_FIRST)
    ).scalars().all()
    return [PunchResponse.model_validate(p) for p in rows]
