"""
Router de maintenance : déclenchement manuel de la sortie automatique.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from checker.database import get_db
from checker.schemas.maintenance import AutoCheckoutReport
from checker.services import auto_checkout_service

router = APIRouter(prefix="/api/v1/maintenance", tags=["Maintenance"])


@router.post("/auto-checkout", response_model=AutoCheckoutReport, summary="Sortir les entrées oubliées")
def auto_checkout(db: Session = Depends(get_db)):
    """
    Force un sys_checkout pour chaque utilisateur entré depuis plus de
    STALE_CHECKIN_CLEANUP_HOURS. Même traitement que le job planifié.
    """
    return auto_checkout_service.run_auto_checkout(db)
