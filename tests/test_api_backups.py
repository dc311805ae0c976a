"""
Tests d'intégration API pour les sauvegardes, le rapport CSV, la purge et la maintenance.
"""

from datetime import date
from unittest.mock import patch

from checker.schemas.backup import BackupExport, TrimReport
from checker.schemas.maintenance import AutoCheckoutReport


# ============================================================
# GET /api/v1/backups/{table}
# ============================================================

def test_export_table(client):
    with patch("checker.routers.backups.backup_service.export_table") as mock:
        mock.return_value = BackupExport(timestamp="2026-10-19T12:00:00Z", table="users", data=[])
        response = client.get("/api/v1/backups/users")

    assert response.status_code == 200
    assert response.json() == {"timestamp": "2026-10-19T12:00:00Z", "table": "users", "data": []}


def test_export_table_inconnue(client):
    with patch("checker.routers.backups.backup_service.export_table") as mock:
        mock.side_effect = ValueError("Table secrets introuvable.")
        response = client.get("/api/v1/backups/secrets")

    assert response.status_code == 404


# ============================================================
# GET /api/v1/backups/report.csv
# ============================================================

def test_rapport_csv(client):
    with patch("checker.routers.backups.backup_service.punch_report_csv") as mock:
        mock.return_value = "Name,Email,Punch Type,Local Timestamp\r\n"
        response = client.get("/api/v1/backups/report.csv", params={"start": "2026-01-01", "end": "2026-01-31"})

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/csv")
    assert "punches-2026-01-01-2026-01-31.csv" in response.headers["content-disposition"]
    period = mock.call_args[0][1]
    assert period.start == date(2026, 1, 1)


def test_rapport_csv_periode_inversee(client):
    response = client.get("/api/v1/backups/report.csv", params={"start": "2026-02-01", "end": "2026-01-01"})
    assert response.status_code == 400


def test_rapport_csv_date_manquante(client):
    response = client.get("/api/v1/backups/report.csv", params={"start": "2026-02-01"})
    assert response.status_code == 422


# ============================================================
# POST /api/v1/backups/trim
# ============================================================

def test_purge(client):
    with patch("checker.routers.backups.backup_service.trim_punches") as mock:
        mock.return_value = TrimReport(deleted=42, start=date(2026, 1, 1), end=date(2026, 1, 31))
        response = client.post("/api/v1/backups/trim", json={"start": "2026-01-01", "end": "2026-01-31"})

    assert response.status_code == 200
    assert response.json()["deleted"] == 42


def test_purge_periode_inversee(client):
    response = client.post("/api/v1/backups/trim", json={"start": "2026-02-01", "end": "2026-01-01"})
    assert response.status_code == 422


# ============================================================
# POST /api/v1/maintenance/auto-checkout
# ============================================================

def test_sortie_automatique_manuelle(client):
    with patch("checker.routers.maintenance.auto_checkout_service.run_auto_checkout") as mock:
        mock.return_value = AutoCheckoutReport(users_scanned=10, checked_out=["Alice"], errors=[])
        response = client.post("/api/v1/maintenance/auto-checkout")

    assert response.status_code == 200
    assert response.json()["checked_out"] == ["Alice"]
