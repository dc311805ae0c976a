"""
Tests d'intégration API pour l'appel incendie.
"""

import uuid
from unittest.mock import patch

from checker.schemas.fire_drill import (
    CheckStatus,
    FireDrillCheckResponse,
    FireDrillSummary,
    PresenceFilter,
    RollCallPage,
    RollCallSort,
)


def make_page(drill_id="20261019") -> RollCallPage:
    return RollCallPage(drill_id=drill_id, entries=[], page=1, total_pages=1, total=0, total_in=0, total_accounted=0)


# ============================================================
# GET /api/v1/fire-drills
# ============================================================

def test_exercice_du_jour(client):
    with patch("checker.routers.fire_drills.fire_drill_service.current_drill_id", return_value="20261019"):
        response = client.get("/api/v1/fire-drills/current")

    assert response.status_code == 200
    assert response.json() == {"drill_id": "20261019"}


def test_liste_d_appel_filtres(client):
    with patch("checker.routers.fire_drills.fire_drill_service.roll_call") as mock:
        mock.return_value = make_page()
        response = client.get(
            "/api/v1/fire-drills/20261019/roll-call",
            params={"presence": "in", "sort": "hoursAgo", "descending": "true", "page": 2},
        )

    assert response.status_code == 200
    kwargs = mock.call_args.kwargs
    assert kwargs["presence"] == PresenceFilter.IN
    assert kwargs["sort"] == RollCallSort.HOURS_AGO
    assert kwargs["descending"] is True
    assert kwargs["page"] == 2


def test_liste_d_appel_filtre_invalide(client):
    response = client.get("/api/v1/fire-drills/20261019/roll-call", params={"presence": "maybe"})
    assert response.status_code == 422


def test_liste_d_appel_identifiant_invalide(client):
    with patch("checker.routers.fire_drills.fire_drill_service.roll_call") as mock:
        mock.side_effect = ValueError("Identifiant d'exercice invalide : abc (format attendu YYYYMMDD).")
        response = client.get("/api/v1/fire-drills/abc/roll-call")

    assert response.status_code == 400


# ============================================================
# POST /api/v1/fire-drills/{drill_id}/checks/{user_id}
# ============================================================

def test_cocher_une_personne(client):
    user_id = uuid.uuid4()
    with patch("checker.routers.fire_drills.fire_drill_service.toggle_check") as mock:
        mock.return_value = FireDrillCheckResponse(
            id=uuid.uuid4(), drill_id="20261019", user_id=user_id,
            timestamp=1_760_000_000_000, status=CheckStatus.CHECKED, accounted_by="Responsable",
        )
        response = client.post(f"/api/v1/fire-drills/20261019/checks/{user_id}", json={"accounted_by": "Responsable"})

    assert response.status_code == 200
    assert response.json()["status"] == "checked"


def test_cocher_sans_nom_de_responsable(client):
    with patch("checker.routers.fire_drills.fire_drill_service.toggle_check") as mock:
        mock.side_effect = ValueError("Utilisateur introuvable.")
        response = client.post(f"/api/v1/fire-drills/20261019/checks/{uuid.uuid4()}", json={"accounted_by": "  "})

    assert response.status_code == 404
    assert mock.call_args[0][3] == "Utilisateur inconnu"


# ============================================================
# POST /api/v1/fire-drills/{drill_id}/complete
# ============================================================

def test_cloture(client):
    with patch("checker.routers.fire_drills.fire_drill_service.complete_drill") as mock:
        mock.return_value = FireDrillSummary(
            id=uuid.uuid4(), drill_id="20261019", completed_at=1_760_000_000_000,
            total_checked=12, total_present=14,
        )
        response = client.post("/api/v1/fire-drills/20261019/complete")

    assert response.status_code == 201
    assert response.json()["total_checked"] == 12
