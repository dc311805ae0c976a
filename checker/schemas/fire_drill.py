"""
Schémas Pydantic pour l'appel incendie (exercices d'évacuation).
"""

import uuid
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, field_validator

ROLL_CALL_PAGE_SIZE = 20


class CheckStatus(str, Enum):
    CHECKED = "checked"
    UNCHECKED = "unchecked"


class PresenceFilter(str, Enum):
    ALL = "all"
    IN = "in"
    OUT = "out"


class AccountedFilter(str, Enum):
    ALL = "all"
    ACCOUNTED = "accounted"
    UNACCOUNTED = "unaccounted"


class RollCallSort(str, Enum):
    NAME = "name"
    HOURS_AGO = "hoursAgo"


class ToggleCheckRequest(BaseModel):
    accounted_by: str = "Utilisateur inconnu"

    @field_validator("accounted_by")
    @classmethod
    def default_if_blank(cls, v: str) -> str:
        return v.strip() or "Utilisateur inconnu"


class FireDrillCheckResponse(BaseModel):
    id: uuid.UUID
    drill_id: str
    user_id: uuid.UUID
    timestamp: int
    status: CheckStatus
    accounted_by: Optional[str]

    model_config = {"from_attributes": True}


class RollCallEntry(BaseModel):
    """Une ligne de l'appel : présence déduite des pointages + pointage de l'exercice."""
    user_id: uuid.UUID
    name: str
    is_checked_in: bool
    hours_ago: Optional[float]      # None si aucun pointage
    time_ago: str
    is_old: bool                    # Dernier pointage plus ancien que THRESHOLD_HOURS
    accounted: bool
    accounted_by: Optional[str] = None


class RollCallPage(BaseModel):
    drill_id: str
    entries: List[RollCallEntry]
    page: int
    total_pages: int
    total: int            # Après filtres
    total_in: int         # Présents, après filtres
    total_accounted: int  # Personnes comptées sur l'exercice


class FireDrillSummary(BaseModel):
    id: uuid.UUID
    drill_id: str
    completed_at: int
    total_checked: int
    total_present: int

    model_config = {"from_attributes": True}
