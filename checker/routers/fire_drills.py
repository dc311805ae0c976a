"""
Router pour l'appel incendie (exercices d'évacuation).
"""

import uuid
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from checker.database import get_db
from checker.schemas.fire_drill import (
    AccountedFilter,
    FireDrillCheckResponse,
    FireDrillSummary,
    PresenceFilter,
    RollCallPage,
    RollCallSort,
    ToggleCheckRequest,
)
from checker.services import fire_drill_service

router = APIRouter(prefix="/api/v1/fire-drills", tags=["Appel incendie"])


def _raise_http(e: ValueError):
    msg = str(e)
    if "introuvable" in msg:
        raise HTTPException(status_code=404, detail=msg)
    raise HTTPException(status_code=400, detail=msg)


@router.get("/current", summary="Identifiant de l'exercice du jour")
def current_drill():
    return {"drill_id": fire_drill_service.current_drill_id()}


@router.get("/{drill_id}/roll-call", response_model=RollCallPage, summary="Liste d'appel")
def roll_call(
    drill_id: str,
    name: Optional[str] = None,
    presence: PresenceFilter = PresenceFilter.ALL,
    accounted: AccountedFilter = AccountedFilter.ALL,
    sort: RollCallSort = RollCallSort.NAME,
    descending: bool = False,
    page: int = 1,
    db: Session = Depends(get_db),
):
    """
    Liste d'appel paginée (20 par page) : présence déduite du dernier pointage,
    personnes déjà comptées pour l'exercice, filtres et tri.
    """
    try:
        return fire_drill_service.roll_call(
            db, drill_id,
            name=name, presence=presence, accounted=accounted,
            sort=sort, descending=descending, page=page,
        )
    except ValueError as e:
        _raise_http(e)


@router.post(
    "/{drill_id}/checks/{user_id}",
    response_model=FireDrillCheckResponse,
    summary="Cocher / décocher une personne",
)
def toggle_check(
    drill_id: str,
    user_id: uuid.UUID,
    data: ToggleCheckRequest,
    db: Session = Depends(get_db),
):
    try:
        return fire_drill_service.toggle_check(db, drill_id, user_id, data.accounted_by)
    except ValueError as e:
        _raise_http(e)


@router.post("/{drill_id}/complete", response_model=FireDrillSummary, status_code=201,
             summary="Clôturer l'exercice")
def complete_drill(drill_id: str, db: Session = Depends(get_db)):
    """Enregistre le résumé de l'exercice (personnes comptées / présentes)."""
    try:
        return fire_drill_service.complete_drill(db, drill_id)
    except ValueError as e:
        _raise_http(e)
