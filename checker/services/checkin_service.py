"""
Service d'enregistrement des pointages (entrée / sortie).

Flux de perform_checkin_out :
  1. Charger les derniers pointages de l'utilisateur (validés en PunchRecord)
  2. Appliquer la politique de pointage (punch_policy.decide_action)
  3. Rejet anti-rebond → CheckOutcome TOO_SOON, aucune écriture
  4. Sinon écrire un seul Punch (add + commit = création et lien atomiques)
     avec retry sur les erreurs transitoires (timeout, validation, réseau) ;
     seul add + commit est rejoué, jamais la relecture après commit
  5. Retourner un CheckOutcome structuré : l'appelant décide de la suite
     (notification, rechargement de la borne) sans analyser de message d'erreur
"""

import logging
import time
from typing import Callable, List, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from checker.config import settings
from checker.models.punch import PUNCH_NEWEST_FIRST, Punch
from checker.models.user import User
from checker.schemas.punch import (
    CheckActionType,
    CheckOutcome,
    DecisionReason,
    ErrorKind,
    Notification,
    NotificationStyle,
    OutcomeStatus,
    PunchRecord,
)
from checker.services import punch_policy
from checker.timeutils import now_ms as current_ms

logger = logging.getLogger(__name__)

# Fragments de message (en minuscules) qui signalent une erreur transitoire
TRANSIENT_ERROR_MARKERS = ("timed out", "timeout", "validation failed", "network")
RELOAD_ERROR_MARKER = "validation failed"
GENERIC_FAILURE_MESSAGE = "Une erreur est survenue. Veuillez réessayer."


def is_transient_error(exc: Exception) -> bool:
    message = str(exc).lower()
    return any(marker in message for marker in TRANSIENT_ERROR_MARKERS)


def load_recent_punches(db: Session, user_id, limit: Optional[int] = None) -> List[PunchRecord]:
    """Derniers pointages d'un utilisateur, du plus récent au plus ancien (horloge serveur, puis horloge de la borne)."""
    rows = db.execute(
        select(Punch)
        .where(Punch.user_id == user_id)
        .order_by(*PUNCH_NEWEST_FIRST)
        .limit(limit or settings.PUNCH_HISTORY_LIMIT)
    ).scalars().all()
    return [PunchRecord.model_validate(row) for row in rows]


def _success_notification(user_name: str, action: CheckActionType) -> Notification:
    if punch_policy.is_check_in(action):
        return Notification(style=NotificationStyle.CHECK_IN, message=f"{user_name} : entrée enregistrée")
    return Notification(style=NotificationStyle.CHECK_OUT, message=f"{user_name} : sortie enregistrée")


def _write_punch(db: Session, record: PunchRecord) -> Punch:
    punch = Punch(
        user_id=record.user_id,
        type=record.type.value,
        timestamp=record.timestamp,
        is_admin_generated=record.is_admin_generated,
        is_system_generated=record.is_system_generated,
        device=record.device,
    )
    db.add(punch)
    db.commit()
    return punch


def _saved_record(db: Session, punch: Punch, record: PunchRecord) -> PunchRecord:
    """
    Relit le pointage committé (id, horloge serveur). Le pointage existe déjà :
    un échec de relecture ne relance jamais l'écriture.
    """
    try:
        db.refresh(punch)
        return PunchRecord.model_validate(punch)
    except Exception as exc:
        logger.warning("Pointage enregistré mais relecture impossible : %s", exc)
        return record


def perform_checkin_out(
    db: Session,
    user: User,
    force: Optional[CheckActionType] = None,
    device: Optional[str] = None,
    now_ms: Optional[int] = None,
    sleep: Callable[[float], None] = time.sleep,
    punches: Optional[List[PunchRecord]] = None,
) -> CheckOutcome:
    """
    Décide et enregistre le pointage suivant d'un utilisateur.

    `punches` permet de fournir un historique déjà chargé (nettoyage automatique) ;
    sinon il est lu en base. Les actions système ne produisent aucune notification :
    personne n'est devant la borne pour la lire, leurs échecs sont seulement journalisés.
    """
    if now_ms is None:
        now_ms = current_ms()
    if punches is None:
        punches = load_recent_punches(db, user.id)

    last_punch = punch_policy.get_most_reliable_punch(punches)
    decision = punch_policy.decide_action(last_punch, now_ms, force=force)

    if not decision.accepted:
        logger.info(
            "Pointage refusé pour %s : dernier pointage il y a moins de %d min (%s min restantes)",
            user.name, settings.ALLOW_OPPOSITE_MINUTES, decision.minutes_remaining,
        )
        current_state = "entré(e)" if punch_policy.is_check_in(last_punch.type) else "sorti(e)"
        return CheckOutcome(
            status=OutcomeStatus.TOO_SOON,
            action=decision.action,
            minutes_remaining=decision.minutes_remaining,
            notification=Notification(
                style=NotificationStyle.ERROR,
                message=(
                    f"{user.name} : déjà {current_state}, "
                    f"réessayez dans {decision.minutes_remaining} min"
                ),
            ),
        )

    if decision.reason == DecisionReason.STALE_RESET:
        logger.info("Dernier pointage de %s trop ancien : remise à zéro en entrée", user.name)

    record = punch_policy.build_punch_fields(user.id, decision, now_ms, device)
    silent = decision.is_system_generated

    max_attempts = settings.WRITE_MAX_ATTEMPTS
    base_delay = settings.WRITE_RETRY_BASE_DELAY_MS / 1000
    last_error: Optional[Exception] = None
    attempt = 0
    punch: Optional[Punch] = None

    for attempt in range(1, max_attempts + 1):
        try:
            punch = _write_punch(db, record)
            break
        except Exception as exc:
            db.rollback()
            last_error = exc
            if not is_transient_error(exc):
                break
            logger.warning("Écriture du pointage échouée (tentative %d/%d) : %s", attempt, max_attempts, exc)
            # Backoff simple avant la tentative suivante
            if attempt < max_attempts:
                sleep(base_delay * attempt)

    if punch is not None:
        logger.info(
            "Pointage %s enregistré pour %s (borne=%s, tentative %d)",
            record.type.value, user.name, device or "inconnue", attempt,
        )
        return CheckOutcome(
            status=OutcomeStatus.RECORDED,
            action=record.type,
            punch=_saved_record(db, punch, record),
            attempts=attempt,
            notification=None if silent else _success_notification(user.name, record.type),
        )

    error_kind = ErrorKind.TRANSIENT if is_transient_error(last_error) else ErrorKind.PERMANENT
    logger.error(
        "Échec du pointage %s pour %s après %d tentative(s) : %s",
        record.type.value, user.name, attempt, last_error,
        exc_info=last_error,
    )
    return CheckOutcome(
        status=OutcomeStatus.FAILED,
        action=record.type,
        error_kind=error_kind,
        error_message=str(last_error),
        attempts=attempt,
        should_reload=RELOAD_ERROR_MARKER in str(last_error).lower(),
        notification=None if silent else Notification(
            style=NotificationStyle.ERROR, message=GENERIC_FAILURE_MESSAGE,
        ),
    )
