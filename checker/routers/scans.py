"""
Router de la borne : scan de badge et aperçu de l'action suivante.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Header, HTTPException, Request
from sqlalchemy.orm import Session

from checker.database import get_db
from checker.schemas.punch import ActionPreview, ScanRequest, ScanResult, normalize_device
from checker.services import punch_policy, scan_service
from checker.services.debounce import DebounceRegistry

router = APIRouter(prefix="/api/v1/scans", tags=["Borne"])


def get_debounce_registry(request: Request) -> DebounceRegistry:
    """Registre anti double-scan créé au démarrage de l'application (lifespan)."""
    return request.app.state.debounce_registry


def resolve_device(request: Request, x_device_id: Optional[str]) -> str:
    """Identifiant de borne : en-tête X-Device-Id, sinon empreinte de la requête."""
    header_device = normalize_device(x_device_id)
    if header_device:
        return header_device
    return scan_service.derive_device_id([
        request.headers.get("user-agent", ""),
        request.headers.get("accept-language", ""),
        request.client.host if request.client else "",
    ])


@router.post("", response_model=ScanResult, summary="Scanner un badge")
def scan_badge(
    data: ScanRequest,
    request: Request,
    x_device_id: Optional[str] = Header(default=None),
    db: Session = Depends(get_db),
    registry: DebounceRegistry = Depends(get_debounce_registry),
):
    """
    Enregistre une entrée ou une sortie à partir du texte brut de la douchette.

    Toujours 200 : le champ `status` indique le résultat (recorded, too_soon,
    double_scan, user_not_found, email_input, empty, failed) et `notification`
    le message à afficher. `outcome.should_reload` demande un rechargement de la borne.
    """
    device = data.device or resolve_device(request, x_device_id)
    return scan_service.process_scan(db, data.code, registry, device=device)


@router.get("/preview", response_model=ActionPreview, summary="Action prévue pour un badge")
def preview(code: str, db: Session = Depends(get_db)):
    """Indique si le prochain scan de ce badge sera une entrée ou une sortie (aucune écriture)."""
    user = scan_service.find_user_by_code(db, punch_policy.extract_user_id(code.strip()))
    if user is None:
        raise HTTPException(status_code=404, detail="Utilisateur introuvable.")
    return scan_service.preview_action(db, user)
