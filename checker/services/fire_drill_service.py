"""
Service d'appel incendie (exercice d'évacuation).

Pendant un exercice, un responsable coche chaque personne retrouvée au point
de rassemblement. La présence dans le bâtiment est déduite du dernier
pointage ; le pointage d'exercice (FireDrillCheck) est unique par personne
et par exercice et bascule entre checked et unchecked.
"""

import math
import re
import uuid
import logging
from datetime import date
from typing import Dict, List, Optional

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from checker.config import settings
from checker.models.fire_drill import FireDrill, FireDrillCheck
from checker.models.punch import PUNCH_NEWEST_FIRST, Punch
from checker.models.user import User
from checker.schemas.fire_drill import (
    ROLL_CALL_PAGE_SIZE,
    AccountedFilter,
    CheckStatus,
    FireDrillCheckResponse,
    FireDrillSummary,
    PresenceFilter,
    RollCallEntry,
    RollCallPage,
    RollCallSort,
)
from checker.schemas.punch import PunchRecord
from checker.services import punch_policy
from checker.timeutils import MS_PER_HOUR
from checker.timeutils import now_ms as current_ms

logger = logging.getLogger(__name__)

DRILL_ID_REGEX = re.compile(r"^\d{8}$")


def current_drill_id(today: Optional[date] = None) -> str:
    """Identifiant de l'exercice du jour : YYYYMMDD."""
    return (today or date.today()).strftime("%Y%m%d")


def _validate_drill_id(drill_id: str) -> None:
    if not DRILL_ID_REGEX.match(drill_id):
        raise ValueError(f"Identifiant d'exercice invalide : {drill_id} (format attendu YYYYMMDD).")


def format_time_ago(hours: Optional[float]) -> str:
    """Durée écoulée depuis le dernier pointage, lisible sur l'écran d'appel."""
    if hours is None:
        return "Jamais"
    if hours < 1 / 60:
        return "À l'instant"
    if hours < 1:
        minutes = math.floor(hours * 60)
        return f"il y a {minutes} minute{'s' if minutes != 1 else ''}"
    if hours < 24:
        whole = math.floor(hours)
        return f"il y a {whole} heure{'s' if whole != 1 else ''}"
    days = math.floor(hours / 24)
    return f"il y a {days} jour{'s' if days != 1 else ''}"


def latest_punch_by_user(db: Session) -> Dict[uuid.UUID, PunchRecord]:
    """Dernier pointage de chaque utilisateur (ROW_NUMBER par utilisateur, horloge serveur)."""
    ranked = (
        select(
            Punch,
            func.row_number()
            .over(partition_by=Punch.user_id, order_by=list(PUNCH_NEWEST_FIRST))
            .label("rank"),
        )
        .subquery()
    )
    rows = db.execute(
        select(Punch).join(ranked, ranked.c.id == Punch.id).where(ranked.c.rank == 1)
    ).scalars().all()
    return {row.user_id: PunchRecord.model_validate(row) for row in rows}


def _checks_for_drill(db: Session, drill_id: str) -> Dict[uuid.UUID, FireDrillCheck]:
    checks = db.execute(
        select(FireDrillCheck).where(FireDrillCheck.drill_id == drill_id)
    ).scalars().all()
    return {check.user_id: check for check in checks}


def toggle_check(
    db: Session,
    drill_id: str,
    user_id: uuid.UUID,
    accounted_by: str,
    now_ms: Optional[int] = None,
) -> FireDrillCheckResponse:
    """
    Coche ou décoche une personne pour l'exercice (upsert).
    Lève ValueError si l'identifiant d'exercice est invalide ou l'utilisateur introuvable.
    """
    _validate_drill_id(drill_id)
    if db.get(User, user_id) is None:
        raise ValueError("Utilisateur introuvable.")
    if now_ms is None:
        now_ms = current_ms()

    existing = db.execute(
        select(FireDrillCheck).where(
            FireDrillCheck.drill_id == drill_id,
            FireDrillCheck.user_id == user_id,
        )
    ).scalar_one_or_none()

    if existing is not None:
        existing.status = (
            CheckStatus.UNCHECKED.value if existing.status == CheckStatus.CHECKED.value
            else CheckStatus.CHECKED.value
        )
        existing.timestamp = now_ms
        existing.accounted_by = accounted_by
        check = existing
    else:
        check = FireDrillCheck(
            drill_id=drill_id,
            user_id=user_id,
            timestamp=now_ms,
            status=CheckStatus.CHECKED.value,
            accounted_by=accounted_by,
        )
        db.add(check)

    db.commit()
    db.refresh(check)

    logger.info("Exercice %s : %s → %s (par %s)", drill_id, user_id, check.status, accounted_by)
    return FireDrillCheckResponse.model_validate(check)


def _sort_key(sort: RollCallSort):
    if sort == RollCallSort.HOURS_AGO:
        return lambda e: e.hours_ago if e.hours_ago is not None else math.inf
    return lambda e: e.name.lower()


def roll_call(
    db: Session,
    drill_id: str,
    now_ms: Optional[int] = None,
    name: Optional[str] = None,
    presence: PresenceFilter = PresenceFilter.ALL,
    accounted: AccountedFilter = AccountedFilter.ALL,
    sort: RollCallSort = RollCallSort.NAME,
    descending: bool = False,
    page: int = 1,
) -> RollCallPage:
    """
    Liste d'appel filtrée, triée et paginée (ROLL_CALL_PAGE_SIZE lignes par page).

    Le filtre `accounted` ne s'applique qu'aux présents (presence == IN) :
    on ne cherche pas à compter les personnes sorties du bâtiment.
    """
    _validate_drill_id(drill_id)
    if now_ms is None:
        now_ms = current_ms()

    users = db.execute(select(User)).scalars().all()
    last_punches = latest_punch_by_user(db)
    checks = _checks_for_drill(db, drill_id)

    entries: List[RollCallEntry] = []
    for user in users:
        last = last_punches.get(user.id)
        hours_ago = (now_ms - last.timestamp) / MS_PER_HOUR if last else None
        check = checks.get(user.id)
        is_accounted = check is not None and check.status == CheckStatus.CHECKED.value
        entries.append(RollCallEntry(
            user_id=user.id,
            name=user.name,
            is_checked_in=last is not None and punch_policy.is_check_in(last.type),
            hours_ago=hours_ago,
            time_ago=format_time_ago(hours_ago),
            is_old=hours_ago is None or hours_ago >= settings.THRESHOLD_HOURS,
            accounted=is_accounted,
            accounted_by=check.accounted_by if is_accounted else None,
        ))

    total_accounted = sum(1 for e in entries if e.accounted)

    if name:
        needle = name.lower()
        entries = [e for e in entries if needle in e.name.lower()]
    if presence == PresenceFilter.IN:
        entries = [e for e in entries if e.is_checked_in]
        if accounted == AccountedFilter.ACCOUNTED:
            entries = [e for e in entries if e.accounted]
        elif accounted == AccountedFilter.UNACCOUNTED:
            entries = [e for e in entries if not e.accounted]
    elif presence == PresenceFilter.OUT:
        entries = [e for e in entries if not e.is_checked_in]

    entries.sort(key=_sort_key(sort), reverse=descending)

    total = len(entries)
    total_pages = max(1, math.ceil(total / ROLL_CALL_PAGE_SIZE))
    page = min(max(page, 1), total_pages)
    start = (page - 1) * ROLL_CALL_PAGE_SIZE

    return RollCallPage(
        drill_id=drill_id,
        entries=entries[start:start + ROLL_CALL_PAGE_SIZE],
        page=page,
        total_pages=total_pages,
        total=total,
        total_in=sum(1 for e in entries if e.is_checked_in),
        total_accounted=total_accounted,
    )


def complete_drill(db: Session, drill_id: str, now_ms: Optional[int] = None) -> FireDrillSummary:
    """
    Clôture l'exercice : enregistre le nombre de personnes comptées et
    le nombre de présents d'après les pointages.
    """
    _validate_drill_id(drill_id)
    if now_ms is None:
        now_ms = current_ms()

    checks = _checks_for_drill(db, drill_id)
    total_checked = sum(1 for c in checks.values() if c.status == CheckStatus.CHECKED.value)
    total_present = sum(
        1 for punch in latest_punch_by_user(db).values()
        if punch_policy.is_check_in(punch.type)
    )

    drill = FireDrill(
        drill_id=drill_id,
        completed_at=now_ms,
        total_checked=total_checked,
        total_present=total_present,
    )
    db.add(drill)
    db.commit()
    db.refresh(drill)

    logger.info(
        "Exercice %s clôturé : %d comptés sur %d présents",
        drill_id, total_checked, total_present,
    )
    return FireDrillSummary.model_validate(drill)
