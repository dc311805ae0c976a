"""
Schémas Pydantic pour les sauvegardes JSON, le rapport CSV et la purge des pointages.
"""

import datetime as dt
import uuid
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, model_validator

EXPORTABLE_TABLES = ("users", "punches", "departments", "fire_drill_checks", "fire_drills")
REPORT_COLUMNS = ["Name", "Email", "Punch Type", "Local Timestamp"]


class DepartmentRecord(BaseModel):
    id: uuid.UUID
    name: str
    department_id: str

    model_config = {"from_attributes": True}


class BackupExport(BaseModel):
    """Fichier de sauvegarde : une table complète, horodatée (ISO 8601 UTC)."""
    timestamp: str
    table: str
    data: List[Dict[str, Any]]


class DateRange(BaseModel):
    start: dt.date
    end: dt.date

    @model_validator(mode="after")
    def start_before_end(self) -> "DateRange":
        if self.start > self.end:
            raise ValueError("La date de début doit précéder la date de fin.")
        return self


class TrimReport(BaseModel):
    deleted: int
    start: dt.date
    end: dt.date
    cutoff: Optional[dt.datetime] = None  # Les pointages plus récents sont conservés
