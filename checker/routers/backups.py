"""
Router pour les sauvegardes, le rapport CSV et la purge des pointages.
"""

import datetime as dt

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import Response
from pydantic import ValidationError
from sqlalchemy.orm import Session

from checker.database import get_db
from checker.schemas.backup import BackupExport, DateRange, TrimReport
from checker.services import backup_service

router = APIRouter(prefix="/api/v1/backups", tags=["Sauvegardes"])


@router.get("/report.csv", summary="Rapport CSV des pointages")
def punch_report(start: dt.date, end: dt.date, db: Session = Depends(get_db)):
    """Colonnes : Name, Email, Punch Type, Local Timestamp. Période incluse, heure locale."""
    try:
        period = DateRange(start=start, end=end)
    except ValidationError:
        raise HTTPException(status_code=400, detail="La date de début doit précéder la date de fin.")
    content = backup_service.punch_report_csv(db, period)
    return Response(
        content=content,
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="punches-{start}-{end}.csv"'},
    )


@router.post("/trim", response_model=TrimReport, summary="Purger les pointages d'une période")
def trim_punches(data: DateRange, db: Session = Depends(get_db)):
    """
    Supprime les pointages de la période. Les pointages des 7 derniers jours
    (RETENTION_DAYS) ne sont jamais supprimés.
    """
    return backup_service.trim_punches(db, data)


@router.get("/{table}", response_model=BackupExport, summary="Exporter une table en JSON")
def export_table(table: str, db: Session = Depends(get_db)):
    """Retourne {timestamp, table, data} pour la table demandée."""
    try:
        return backup_service.export_table(db, table)
    except ValueError as e:
        raise HTTPException(status_code=404, detail=str(e))
