"""
Sortie automatique des utilisateurs restés "entrés" trop longtemps.

Un utilisateur dont le dernier pointage fiable est une entrée datant de plus de
STALE_CHECKIN_CLEANUP_HOURS reçoit un pointage sys_checkout. Aucune notification
n'est produite ; les échecs sont journalisés et reportés, jamais levés.
"""

import logging
from typing import List, Optional, Tuple

from sqlalchemy import select
from sqlalchemy.orm import Session

from checker.config import settings
from checker.models.user import User
from checker.schemas.maintenance import AutoCheckoutError, AutoCheckoutReport
from checker.schemas.punch import CheckActionType, OutcomeStatus, PunchRecord
from checker.services import checkin_service, punch_policy
from checker.timeutils import MS_PER_HOUR
from checker.timeutils import now_ms as current_ms

logger = logging.getLogger(__name__)


def find_stale_checkins(
    db: Session,
    now_ms: int,
    max_hours: Optional[int] = None,
) -> Tuple[int, List[Tuple[User, List[PunchRecord]]]]:
    """
    Retourne (nombre d'utilisateurs examinés, [(utilisateur, pointages)]) pour
    les utilisateurs entrés depuis plus de max_hours.
    """
    if max_hours is None:
        max_hours = settings.STALE_CHECKIN_CLEANUP_HOURS
    max_ms = max_hours * MS_PER_HOUR

    users = db.execute(select(User)).scalars().all()
    stale = []
    for user in users:
        punches = checkin_service.load_recent_punches(db, user.id)
        last = punch_policy.get_most_reliable_punch(punches)
        if last is None:
            continue
        if punch_policy.is_check_in(last.type) and now_ms - last.timestamp > max_ms:
            stale.append((user, punches))
    return len(users), stale


def run_auto_checkout(db: Session, now_ms: Optional[int] = None) -> AutoCheckoutReport:
    """Force un sys_checkout pour chaque entrée oubliée et retourne le rapport."""
    if now_ms is None:
        now_ms = current_ms()

    users_scanned, stale = find_stale_checkins(db, now_ms)
    logger.info("%d utilisateur(s) à sortir automatiquement", len(stale))

    checked_out: List[str] = []
    errors: List[AutoCheckoutError] = []
    for user, punches in stale:
        outcome = checkin_service.perform_checkin_out(
            db, user, force=CheckActionType.SYSTEM_CHECK_OUT, now_ms=now_ms, punches=punches,
        )
        if outcome.status == OutcomeStatus.RECORDED:
            checked_out.append(user.name)
        else:
            logger.error("Sortie automatique échouée pour %s : %s", user.name, outcome.error_message)
            errors.append(AutoCheckoutError(user_name=user.name, reason=outcome.error_message or ""))

    return AutoCheckoutReport(users_scanned=users_scanned, checked_out=checked_out, errors=errors)
