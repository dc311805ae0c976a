"""
Tests unitaires pour la sortie automatique des entrées oubliées.
Couverture : find_stale_checkins, run_auto_checkout, job planifié.
"""

import uuid
from types import SimpleNamespace
from unittest.mock import MagicMock, patch

from checker.schemas.punch import CheckActionType, CheckOutcome, ErrorKind, OutcomeStatus, PunchRecord
from checker.services.auto_checkout_service import find_stale_checkins, run_auto_checkout
from checker.timeutils import MS_PER_HOUR

NOW = 1_760_000_000_000


def make_user(name):
    return SimpleNamespace(id=uuid.uuid4(), name=name)


def make_punch(user, type_, hours_ago):
    ts = NOW - int(hours_ago * MS_PER_HOUR)
    return PunchRecord(user_id=user.id, type=type_, timestamp=ts, server_created_at=ts)


def db_with_users(users):
    db = MagicMock()
    db.execute.return_value.scalars.return_value.all.return_value = users
    return db


# ----------------------------------------------------------------
# find_stale_checkins
# ----------------------------------------------------------------

def test_seules_les_entrees_anciennes_sont_retenues():
    stale = make_user("Entrée oubliée")
    recent = make_user("Entrée récente")
    out = make_user("Déjà sorti")
    never = make_user("Jamais pointé")
    history = {
        stale.id: [make_punch(stale, "checkin", 17)],
        recent.id: [make_punch(recent, "checkin", 2)],
        out.id: [make_punch(out, "checkout", 20), make_punch(out, "checkin", 30)],
        never.id: [],
    }
    db = db_with_users([stale, recent, out, never])

    with patch("checker.services.auto_checkout_service.checkin_service.load_recent_punches",
               side_effect=lambda _db, user_id: history[user_id]):
        scanned, found = find_stale_checkins(db, NOW, max_hours=16)

    assert scanned == 4
    assert [user for user, _ in found] == [stale]
    assert found[0][1] == history[stale.id]


def test_entree_systeme_ancienne_aussi_retenue():
    user = make_user("Bob")
    db = db_with_users([user])

    with patch("checker.services.auto_checkout_service.checkin_service.load_recent_punches",
               return_value=[make_punch(user, "admin_checkin", 40)]):
        _, found = find_stale_checkins(db, NOW, max_hours=16)

    assert len(found) == 1


# ----------------------------------------------------------------
# run_auto_checkout
# ----------------------------------------------------------------

@patch("checker.services.auto_checkout_service.checkin_service.perform_checkin_out")
@patch("checker.services.auto_checkout_service.find_stale_checkins")
def test_sortie_systeme_forcee(mock_find, mock_perform):
    alice = make_user("Alice")
    punches = [make_punch(alice, "checkin", 18)]
    mock_find.return_value = (3, [(alice, punches)])
    mock_perform.return_value = CheckOutcome(status=OutcomeStatus.RECORDED, action=CheckActionType.SYSTEM_CHECK_OUT)
    db = MagicMock()

    report = run_auto_checkout(db, now_ms=NOW)

    mock_perform.assert_called_once_with(
        db, alice, force=CheckActionType.SYSTEM_CHECK_OUT, now_ms=NOW, punches=punches,
    )
    assert report.users_scanned == 3
    assert report.checked_out == ["Alice"]
    assert report.errors == []


@patch("checker.services.auto_checkout_service.checkin_service.perform_checkin_out")
@patch("checker.services.auto_checkout_service.find_stale_checkins")
def test_echec_reporte_sans_interrompre(mock_find, mock_perform):
    alice, bob = make_user("Alice"), make_user("Bob")
    mock_find.return_value = (2, [(alice, []), (bob, [])])
    mock_perform.side_effect = [
        CheckOutcome(status=OutcomeStatus.FAILED, error_kind=ErrorKind.PERMANENT, error_message="permission denied"),
        CheckOutcome(status=OutcomeStatus.RECORDED),
    ]

    report = run_auto_checkout(MagicMock(), now_ms=NOW)

    assert report.checked_out == ["Bob"]
    assert len(report.errors) == 1
    assert report.errors[0].user_name == "Alice"
    assert report.errors[0].reason == "permission denied"


# ----------------------------------------------------------------
# Scheduler
# ----------------------------------------------------------------

@patch("checker.scheduler.SessionLocal")
def test_job_planifie_ferme_la_session(mock_session_local):
    from checker.scheduler import _auto_checkout_scheduled

    session = mock_session_local.return_value
    with patch("checker.services.auto_checkout_service.run_auto_checkout",
               side_effect=Exception("connexion perdue")):
        _auto_checkout_scheduled()

    session.close.assert_called_once()


@patch("checker.scheduler.scheduler")
def test_scheduler_desactive_par_defaut(mock_scheduler):
    from checker.scheduler import start_scheduler

    start_scheduler()

    mock_scheduler.add_job.assert_not_called()
    mock_scheduler.start.assert_not_called()
