"""
Schémas Pydantic pour les pointages et le résultat d'une décision d'entrée/sortie.

Les lignes lues en base sont validées ici (PunchRecord) avant d'atteindre la
politique de pointage : aucun dict ad hoc ne circule entre les couches.
"""

import uuid
from enum import Enum
from typing import Optional

from pydantic import BaseModel, field_validator

DEVICE_ID_MAX_LENGTH = 20  # Longueur de la colonne punches.device


def normalize_device(v: Optional[str]) -> Optional[str]:
    """Identifiant de borne nettoyé et tronqué ; None si vide."""
    if v is None or not v.strip():
        return None
    return v.strip()[:DEVICE_ID_MAX_LENGTH]


class CheckActionType(str, Enum):
    """Ensemble fermé des types de pointage."""
    CHECK_IN = "checkin"
    CHECK_OUT = "checkout"
    SYSTEM_CHECK_IN = "sys_checkin"
    SYSTEM_CHECK_OUT = "sys_checkout"
    ADMIN_CHECK_IN = "admin_checkin"
    ADMIN_CHECK_OUT = "admin_checkout"


CHECK_IN_TYPES = frozenset({
    CheckActionType.CHECK_IN,
    CheckActionType.SYSTEM_CHECK_IN,
    CheckActionType.ADMIN_CHECK_IN,
})
CHECK_OUT_TYPES = frozenset({
    CheckActionType.CHECK_OUT,
    CheckActionType.SYSTEM_CHECK_OUT,
    CheckActionType.ADMIN_CHECK_OUT,
})
SYSTEM_TYPES = frozenset({CheckActionType.SYSTEM_CHECK_IN, CheckActionType.SYSTEM_CHECK_OUT})
ADMIN_TYPES = frozenset({CheckActionType.ADMIN_CHECK_IN, CheckActionType.ADMIN_CHECK_OUT})


class PunchRecord(BaseModel):
    """Pointage tel que lu en base (ou tel que construit avant insertion)."""
    id: Optional[uuid.UUID] = None
    user_id: uuid.UUID
    type: CheckActionType
    timestamp: int                          # Horloge de la borne (epoch ms)
    server_created_at: Optional[int] = None  # Horloge serveur (epoch ms), absente sur d'anciens pointages
    is_admin_generated: bool = False
    is_system_generated: bool = False
    device: Optional[str] = None

    model_config = {"from_attributes": True}


class PunchResponse(PunchRecord):
    id: uuid.UUID


class DecisionReason(str, Enum):
    FORCED = "forced"
    FIRST_PUNCH = "first_punch"
    STALE_RESET = "stale_reset"
    TOGGLE = "toggle"
    TOO_SOON = "too_soon"


class Decision(BaseModel):
    """Résultat pur de la politique de pointage (aucune écriture)."""
    accepted: bool
    action: CheckActionType
    reason: DecisionReason
    is_admin_generated: bool = False
    is_system_generated: bool = False
    minutes_remaining: Optional[int] = None  # Renseigné seulement si reason == TOO_SOON


class OutcomeStatus(str, Enum):
    RECORDED = "recorded"
    TOO_SOON = "too_soon"
    FAILED = "failed"


class ErrorKind(str, Enum):
    TRANSIENT = "transient"
    PERMANENT = "permanent"


class NotificationStyle(str, Enum):
    CHECK_IN = "checkin"     # Style affirmatif (vert)
    CHECK_OUT = "checkout"   # Style d'avertissement (rouge clair)
    ERROR = "error"          # Style de rejet


class Notification(BaseModel):
    """Message à afficher sur la borne."""
    style: NotificationStyle
    message: str


class CheckOutcome(BaseModel):
    """Résultat structuré d'un pointage : l'appelant décide de la suite à partir de ces champs."""
    status: OutcomeStatus
    action: Optional[CheckActionType] = None
    punch: Optional[PunchRecord] = None
    minutes_remaining: Optional[int] = None
    error_kind: Optional[ErrorKind] = None
    error_message: Optional[str] = None
    attempts: int = 0
    should_reload: bool = False         # Échec "validation failed" : la borne doit se recharger
    notification: Optional[Notification] = None  # None pour les actions système


class ForcePunchRequest(BaseModel):
    """Pointage forcé par un administrateur (ou par le système)."""
    action: CheckActionType
    device: Optional[str] = None

    @field_validator("device")
    @classmethod
    def clean_device(cls, v: Optional[str]) -> Optional[str]:
        return normalize_device(v)


class ScanStatus(str, Enum):
    RECORDED = "recorded"
    TOO_SOON = "too_soon"
    FAILED = "failed"
    EMPTY = "empty"
    EMAIL_INPUT = "email_input"
    DOUBLE_SCAN = "double_scan"
    USER_NOT_FOUND = "user_not_found"


class ScanRequest(BaseModel):
    """Texte brut saisi par la douchette (caractères + Entrée)."""
    code: str
    device: Optional[str] = None

    @field_validator("device")
    @classmethod
    def clean_device(cls, v: Optional[str]) -> Optional[str]:
        return normalize_device(v)


class ScanResult(BaseModel):
    status: ScanStatus
    extracted_id: Optional[str] = None
    user_id: Optional[uuid.UUID] = None
    user_name: Optional[str] = None
    outcome: Optional[CheckOutcome] = None
    notification: Optional[Notification] = None


class ActionPreview(BaseModel):
    """Action prévue pour un badge, affichée avant validation (aucune écriture)."""
    user_id: uuid.UUID
    user_name: str
    action: CheckActionType
    accepted: bool
    minutes_remaining: Optional[int] = None
