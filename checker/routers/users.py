"""
Router pour les utilisateurs et les visiteurs.
Administration (création, renommage, droits), enregistrement visiteur,
pointages forcés, consultation des passages et badge imprimable.
"""

import uuid
from typing import List, Optional

from fastapi import APIRouter, Depends, Header, HTTPException, Request
from fastapi.responses import Response
from sqlalchemy.orm import Session

from checker.database import get_db
from checker.models.user import User
from checker.routers.scans import resolve_device
from checker.schemas.punch import CheckOutcome, ForcePunchRequest, PunchResponse
from checker.schemas.user import UserCreate, UserResponse, UserUpdate, VisitorCreate
from checker.services import badge_service, checkin_service, user_service

router = APIRouter(prefix="/api/v1", tags=["Utilisateurs"])


def _raise_http(e: ValueError):
    msg = str(e)
    if "introuvable" in msg:
        raise HTTPException(status_code=404, detail=msg)
    if "déjà" in msg:
        raise HTTPException(status_code=409, detail=msg)
    raise HTTPException(status_code=400, detail=msg)


@router.get("/users", response_model=List[UserResponse], summary="Lister les utilisateurs")
def list_users(db: Session = Depends(get_db)):
    """Retourne tous les utilisateurs triés par nom."""
    return user_service.list_users(db)


@router.post("/users", response_model=UserResponse, status_code=201, summary="Créer un utilisateur")
def create_user(data: UserCreate, db: Session = Depends(get_db)):
    """Crée un membre du personnel. 409 si le badge est déjà enregistré."""
    try:
        return user_service.create_user(db, data)
    except ValueError as e:
        _raise_http(e)


@router.put("/users/{user_id}", response_model=UserResponse, summary="Modifier un utilisateur")
def update_user(user_id: uuid.UUID, data: UserUpdate, db: Session = Depends(get_db)):
    """Renomme un utilisateur ou bascule ses droits admin / autorisé."""
    user = user_service.update_user(db, user_id, data)
    if user is None:
        raise HTTPException(status_code=404, detail="Utilisateur introuvable.")
    return user


@router.post("/visitors", response_model=UserResponse, status_code=201, summary="Enregistrer un visiteur")
def register_visitor(data: VisitorCreate, db: Session = Depends(get_db)):
    """
    Enregistre un visiteur depuis la borne.
    422 si le formulaire est invalide, 409 si le badge est déjà enregistré.
    """
    try:
        return user_service.register_visitor(db, data)
    except ValueError as e:
        _raise_http(e)


@router.post(
    "/users/{user_id}/punches",
    response_model=CheckOutcome,
    summary="Forcer une entrée ou une sortie",
)
def force_punch(
    user_id: uuid.UUID,
    data: ForcePunchRequest,
    request: Request,
    x_device_id: Optional[str] = Header(default=None),
    db: Session = Depends(get_db),
):
    """
    Enregistre exactement l'action demandée, sans consulter l'historique
    (admin_checkin, admin_checkout, ou sys_* pour un nettoyage manuel).
    """
    user = db.get(User, user_id)
    if user is None:
        raise HTTPException(status_code=404, detail="Utilisateur introuvable.")
    device = data.device or resolve_device(request, x_device_id)
    return checkin_service.perform_checkin_out(db, user, force=data.action, device=device)


@router.get(
    "/users/{user_id}/punches",
    response_model=List[PunchResponse],
    summary="Consulter les passages d'un utilisateur",
)
def list_user_punches(user_id: uuid.UUID, limit: int = 20, db: Session = Depends(get_db)):
    """Derniers pointages de l'utilisateur, du plus récent au plus ancien."""
    try:
        return user_service.list_user_punches(db, user_id, limit=limit)
    except ValueError as e:
        _raise_http(e)


@router.get("/punches/recent", response_model=List[PunchResponse], summary="Pointages récents")
def list_recent_punches(hours: int = 24, db: Session = Depends(get_db)):
    """Pointages des dernières heures (24 par défaut)."""
    return user_service.list_recent_punches(db, hours=hours)


@router.get(
    "/users/{user_id}/badge.png",
    summary="Badge imprimable (QR code)",
    responses={200: {"content": {"image/png": {}}}},
)
def badge_png(user_id: uuid.UUID, db: Session = Depends(get_db)):
    """Retourne le QR code du code badge de l'utilisateur."""
    user = db.get(User, user_id)
    if user is None:
        raise HTTPException(status_code=404, detail="Utilisateur introuvable.")
    return Response(content=badge_service.render_badge_png(user.barcode), media_type="image/png")


@router.get("/badges/new", summary="Générer un code badge valide")
def new_badge_code():
    """Code de 20 caractères passant les contrôles Luhn, Damm et anti-faute de frappe."""
    return {"barcode": badge_service.generate_valid_barcode()}
