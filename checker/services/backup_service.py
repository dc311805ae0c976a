"""
Service de sauvegarde et de rapports.

- Export JSON d'une table : {timestamp, table, data}
- Rapport CSV des pointages : Name, Email, Punch Type, Local Timestamp
- Purge des pointages d'une période, jamais ceux des RETENTION_DAYS derniers jours

Chaque opération laisse une trace dans la table backups.
"""

import csv
import io
import logging
from datetime import datetime, time, timedelta
from typing import Optional
from zoneinfo import ZoneInfo

from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from checker.config import settings
from checker.models.backup import Backup
from checker.models.department import Department
from checker.models.fire_drill import FireDrill, FireDrillCheck
from checker.models.punch import Punch
from checker.models.user import User
from checker.schemas.backup import (
    EXPORTABLE_TABLES,
    REPORT_COLUMNS,
    BackupExport,
    DateRange,
    DepartmentRecord,
    TrimReport,
)
from checker.schemas.fire_drill import FireDrillCheckResponse, FireDrillSummary
from checker.schemas.punch import PunchResponse
from checker.schemas.user import UserResponse
from checker.timeutils import from_ms, to_ms
from checker.timeutils import now_ms as current_ms

logger = logging.getLogger(__name__)

# Table exportable → (modèle SQLAlchemy, schéma de sérialisation)
_TABLES = {
    "users": (User, UserResponse),
    "punches": (Punch, PunchResponse),
    "departments": (Department, DepartmentRecord),
    "fire_drill_checks": (FireDrillCheck, FireDrillCheckResponse),
    "fire_drills": (FireDrill, FireDrillSummary),
}


def _local_zone() -> ZoneInfo:
    return ZoneInfo(settings.LOCAL_TIMEZONE)


def _record_backup(db: Session, backup_type: str, now_ms: int) -> None:
    db.add(Backup(timestamp=now_ms, type=backup_type))


def export_table(db: Session, table: str, now_ms: Optional[int] = None) -> BackupExport:
    """
    Exporte toutes les lignes d'une table.
    Lève ValueError si la table n'est pas exportable.
    """
    if table not in EXPORTABLE_TABLES:
        raise ValueError(f"Table {table} introuvable. Tables exportables : {', '.join(EXPORTABLE_TABLES)}")
    if now_ms is None:
        now_ms = current_ms()

    model, schema = _TABLES[table]
    rows = db.execute(select(model)).scalars().all()
    data = [schema.model_validate(row).model_dump(mode="json") for row in rows]

    _record_backup(db, "export", now_ms)
    db.commit()

    logger.info("Sauvegarde de la table %s : %d lignes", table, len(data))
    return BackupExport(
        timestamp=from_ms(now_ms).isoformat().replace("+00:00", "Z"),
        table=table,
        data=data,
    )


def _range_bounds_ms(period: DateRange) -> tuple[int, int]:
    """Bornes [début du premier jour, fin du dernier jour] en heure locale, en epoch ms."""
    zone = _local_zone()
    start = datetime.combine(period.start, time.min, tzinfo=zone)
    end = datetime.combine(period.end + timedelta(days=1), time.min, tzinfo=zone)
    return to_ms(start), to_ms(end) - 1


def punch_report_csv(db: Session, period: DateRange, now_ms: Optional[int] = None) -> str:
    """Rapport CSV des pointages de la période, trié chronologiquement."""
    if now_ms is None:
        now_ms = current_ms()
    start_ms, end_ms = _range_bounds_ms(period)

    rows = db.execute(
        select(User.name, User.email, Punch.type, Punch.timestamp)
        .select_from(Punch)
        .join(User, User.id == Punch.user_id)
        .where(Punch.timestamp >= start_ms, Punch.timestamp <= end_ms)
        .order_by(Punch.timestamp)
    ).all()

    zone = _local_zone()
    buf = io.StringIO()
    writer = csv.writer(buf)
    writer.writerow(REPORT_COLUMNS)
    for name, email, punch_type, timestamp in rows:
        local = from_ms(timestamp).astimezone(zone)
        writer.writerow([name, email or "", punch_type, local.strftime("%Y-%m-%d %H:%M:%S")])

    _record_backup(db, "report", now_ms)
    db.commit()

    logger.info("Rapport CSV %s → %s : %d pointages", period.start, period.end, len(rows))
    return buf.getvalue()


def trim_punches(db: Session, period: DateRange, now_ms: Optional[int] = None) -> TrimReport:
    """
    Supprime les pointages de la période. Les pointages des RETENTION_DAYS
    derniers jours sont toujours conservés, même s'ils tombent dans la période.
    """
    if now_ms is None:
        now_ms = current_ms()
    start_ms, end_ms = _range_bounds_ms(period)
    cutoff = from_ms(now_ms) - timedelta(days=settings.RETENTION_DAYS)
    upper = min(end_ms, to_ms(cutoff))

    deleted = 0
    if upper >= start_ms:
        result = db.execute(
            delete(Punch).where(Punch.timestamp >= start_ms, Punch.timestamp <= upper)
        )
        deleted = result.rowcount or 0

    _record_backup(db, "trim", now_ms)
    db.commit()

    logger.info("Purge %s → %s : %d pointages supprimés", period.start, period.end, deleted)
    return TrimReport(deleted=deleted, start=period.start, end=period.end, cutoff=cutoff)

