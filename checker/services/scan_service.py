"""
Service de traitement d'un scan de badge sur la borne.

Étapes, dans l'ordre :
  1. Saisie vide → EMPTY ; adresse email → EMAIL_INPUT (l'utilisateur doit passer par la connexion)
  2. Extraction de l'identifiant (punch_policy.extract_user_id)
  3. Anti double-scan par borne → DOUBLE_SCAN
  4. Recherche de l'utilisateur par code badge → USER_NOT_FOUND
  5. Décision et écriture (checkin_service.perform_checkin_out)

Aucune exception n'est levée pour une erreur utilisateur : le ScanResult
porte un statut explicite et la notification à afficher.
"""

import logging
import re
import time
from typing import Callable, Iterable, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from checker.models.user import User
from checker.schemas.punch import (
    ActionPreview,
    Notification,
    NotificationStyle,
    OutcomeStatus,
    ScanResult,
    ScanStatus,
)
from checker.services import checkin_service, punch_policy
from checker.services.debounce import DebounceRegistry
from checker.timeutils import now_ms as current_ms

logger = logging.getLogger(__name__)

EMAIL_REGEX = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

_OUTCOME_TO_SCAN_STATUS = {
    OutcomeStatus.RECORDED: ScanStatus.RECORDED,
    OutcomeStatus.TOO_SOON: ScanStatus.TOO_SOON,
    OutcomeStatus.FAILED: ScanStatus.FAILED,
}


def derive_device_id(parts: Iterable[str]) -> str:
    """
    Empreinte courte d'une borne (4 caractères hexadécimaux majuscules).
    Hash 32 bits signé des éléments joints par « | », comme l'identifiant
    historiquement stocké côté navigateur, pour que les valeurs restent comparables.
    """
    fingerprint = "|".join(str(p) for p in parts)
    value = 0
    for char in fingerprint:
        value = ((value << 5) - value + ord(char)) & 0xFFFFFFFF
    if value >= 2 ** 31:
        value -= 2 ** 32
    return format(abs(value), "08x")[-4:].upper()


def find_user_by_code(db: Session, extracted_id: str) -> Optional[User]:
    return db.execute(select(User).where(User.barcode == extracted_id)).scalar_one_or_none()


def _error(status: ScanStatus, message: str, extracted_id: Optional[str] = None) -> ScanResult:
    return ScanResult(
        status=status,
        extracted_id=extracted_id,
        notification=Notification(style=NotificationStyle.ERROR, message=message),
    )


def process_scan(
    db: Session,
    code: str,
    registry: DebounceRegistry,
    device: Optional[str] = None,
    now_ms: Optional[int] = None,
    sleep: Callable[[float], None] = time.sleep,
) -> ScanResult:
    """Traite un scan brut de bout en bout et retourne un résultat structuré."""
    if now_ms is None:
        now_ms = current_ms()

    raw = (code or "").strip()
    if not raw:
        return ScanResult(status=ScanStatus.EMPTY)

    if EMAIL_REGEX.match(raw):
        return _error(
            ScanStatus.EMAIL_INPUT,
            "Ceci ressemble à une adresse email. Utilisez le bouton « Connexion ».",
        )

    extracted_id = punch_policy.extract_user_id(raw)

    if registry.is_double_scan(device, extracted_id, now_ms):
        logger.info("Double scan ignoré : %s (borne=%s)", extracted_id, device or "inconnue")
        return _error(ScanStatus.DOUBLE_SCAN, "Double scan, doucement !", extracted_id)

    user = find_user_by_code(db, extracted_id)
    if user is None:
        logger.info("Badge inconnu : %s (borne=%s)", extracted_id, device or "inconnue")
        return _error(ScanStatus.USER_NOT_FOUND, "Utilisateur introuvable.", extracted_id)

    outcome = checkin_service.perform_checkin_out(db, user, device=device, now_ms=now_ms, sleep=sleep)

    return ScanResult(
        status=_OUTCOME_TO_SCAN_STATUS[outcome.status],
        extracted_id=extracted_id,
        user_id=user.id,
        user_name=user.name,
        outcome=outcome,
        notification=outcome.notification,
    )


def preview_action(db: Session, user: User, now_ms: Optional[int] = None) -> ActionPreview:
    """Action qu'un scan produirait maintenant, sans rien écrire."""
    if now_ms is None:
        now_ms = current_ms()
    punches = checkin_service.load_recent_punches(db, user.id)
    decision = punch_policy.decide_action(punch_policy.get_most_reliable_punch(punches), now_ms)
    return ActionPreview(
        user_id=user.id,
        user_name=user.name,
        action=decision.action,
        accepted=decision.accepted,
        minutes_remaining=decision.minutes_remaining,
    )
