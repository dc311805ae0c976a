"""
Tests unitaires pour le service utilisateurs / visiteurs et le formulaire visiteur.
"""

import uuid
from unittest.mock import MagicMock, patch

import pytest
from pydantic import ValidationError
from sqlalchemy.dialects import postgresql

from checker.models.department import Department
from checker.models.user import User
from checker.schemas.user import UserCreate, UserUpdate, VisitorCreate
from checker.services.user_service import (
    create_user,
    list_recent_punches,
    list_user_punches,
    register_visitor,
    update_user,
)
from checker.timeutils import MS_PER_HOUR


# ----------------------------------------------------------------
# Formulaire visiteur
# ----------------------------------------------------------------

class TestVisitorCreate:
    def test_formulaire_valide(self):
        data = VisitorCreate(name=" Jean Dupont ", purpose="Meeting", barcode="abc1234567", laptop_serial="  ")

        assert data.name == "Jean Dupont"
        assert data.barcode == "ABC1234567"
        assert data.laptop_serial is None

    def test_numero_de_serie_conserve(self):
        data = VisitorCreate(name="Jean", purpose="Vendor", barcode="ABC1234567", laptop_serial=" SN-42 ")
        assert data.laptop_serial == "SN-42"

    @pytest.mark.parametrize("barcode", [
        "ABC123",                     # trop court
        "ABCDEFGHIJK",                # pas de chiffre
        "12345678901",                # pas de lettre
        "ABC-1234567",                # caractère non alphanumérique
        "A1" * 11,                    # trop long
    ])
    def test_badge_invalide(self, barcode):
        with pytest.raises(ValidationError):
            VisitorCreate(name="Jean", purpose="Meeting", barcode=barcode)

    def test_motif_inconnu(self):
        with pytest.raises(ValidationError):
            VisitorCreate(name="Jean", purpose="Tourisme", barcode="ABC1234567")

    def test_nom_obligatoire(self):
        with pytest.raises(ValidationError):
            VisitorCreate(name="   ", purpose="Meeting", barcode="ABC1234567")

    def test_badge_identique_au_nom(self):
        with pytest.raises(ValidationError):
            VisitorCreate(name="abc1234567", purpose="Meeting", barcode="ABC1234567")


def test_user_create_nom_vide():
    with pytest.raises(ValidationError):
        UserCreate(name="  ", barcode="100123456")


# ----------------------------------------------------------------
# create_user
# ----------------------------------------------------------------

@patch("checker.services.user_service.UserResponse.model_validate")
def test_create_user(mock_validate):
    db = MagicMock()
    db.execute.return_value.scalar_one_or_none.return_value = None

    create_user(db, UserCreate(name="Alice Martin", email="alice@example.com", barcode="100123456"))

    user = db.add.call_args[0][0]
    assert isinstance(user, User)
    assert user.name == "Alice Martin"
    assert user.barcode == "100123456"
    assert user.is_auth is False
    db.commit.assert_called_once()
    mock_validate.assert_called_once_with(user)


def test_create_user_badge_deja_enregistre():
    db = MagicMock()
    db.execute.return_value.scalar_one_or_none.return_value = User(name="Bob", barcode="100123456")

    with pytest.raises(ValueError, match="déjà enregistré"):
        create_user(db, UserCreate(name="Alice", barcode="100123456"))

    db.add.assert_not_called()


# ----------------------------------------------------------------
# update_user
# ----------------------------------------------------------------

def test_update_user_introuvable():
    db = MagicMock()
    db.get.return_value = None

    assert update_user(db, uuid.uuid4(), UserUpdate(name="X")) is None
    db.commit.assert_not_called()


@patch("checker.services.user_service.UserResponse.model_validate")
def test_update_user_champs_fournis_seulement(mock_validate):
    db = MagicMock()
    user = User(name="Alice", barcode="100123456", is_admin=False, is_auth=False)
    db.get.return_value = user

    update_user(db, uuid.uuid4(), UserUpdate(is_auth=True))

    assert user.is_auth is True
    assert user.name == "Alice"
    assert user.is_admin is False
    db.commit.assert_called_once()


# ----------------------------------------------------------------
# register_visitor
# ----------------------------------------------------------------

@patch("checker.services.user_service.current_ms", return_value=1_760_000_000_000)
@patch("checker.services.user_service.UserResponse.model_validate")
def test_register_visitor_cree_le_departement(mock_validate, mock_now):
    db = MagicMock()
    # 1er appel : badge libre, 2e appel : département VISITOR absent
    db.execute.return_value.scalar_one_or_none.side_effect = [None, None]
    data = VisitorCreate(name="Jean Dupont", purpose="Contractor", barcode="ABC1234567", laptop_serial="SN-42")

    register_visitor(db, data)

    department, visitor = [c[0][0] for c in db.add.call_args_list]
    assert isinstance(department, Department)
    assert department.department_id == "VISITOR"
    db.flush.assert_called_once()
    assert visitor.email == "contractor_1760000000000@visitor"
    assert visitor.barcode == "ABC1234567"
    assert visitor.purpose == "Contractor"
    assert visitor.laptop_serial == "SN-42"
    assert visitor.is_admin is False


@patch("checker.services.user_service.UserResponse.model_validate")
def test_register_visitor_departement_existant(mock_validate):
    db = MagicMock()
    department = Department(id=uuid.uuid4(), name="Visiteurs", department_id="VISITOR")
    db.execute.return_value.scalar_one_or_none.side_effect = [None, department]

    register_visitor(db, VisitorCreate(name="Jean", purpose="Meeting", barcode="ABC1234567"))

    visitor = db.add.call_args[0][0]
    assert visitor.dept_id == department.id
    db.flush.assert_not_called()


def test_register_visitor_badge_deja_enregistre():
    db = MagicMock()
    db.execute.return_value.scalar_one_or_none.return_value = User(name="Bob", barcode="ABC1234567")

    with pytest.raises(ValueError, match="déjà enregistré"):
        register_visitor(db, VisitorCreate(name="Jean", purpose="Meeting", barcode="abc1234567"))


# ----------------------------------------------------------------
# Consultation des pointages
# ----------------------------------------------------------------

def test_list_user_punches_utilisateur_introuvable():
    db = MagicMock()
    db.get.return_value = None

    with pytest.raises(ValueError, match="introuvable"):
        list_user_punches(db, uuid.uuid4())


@patch("checker.services.user_service.PunchResponse.model_validate", side_effect=lambda p: p)
def test_list_recent_punches(mock_validate):
    db = MagicMock()
    rows = [MagicMock(), MagicMock()]
    db.execute.return_value.scalars.return_value.all.return_value = rows

    result = list_recent_punches(db, hours=24, now_ms=30 * MS_PER_HOUR)

    assert result == rows
    assert mock_validate.call_count == 2


def test_list_user_punches_horloge_serveur_absente_en_dernier():
    db = MagicMock()
    db.execute.return_value.scalars.return_value.all.return_value = []

    assert list_user_punches(db, uuid.uuid4(), limit=5) == []

    sql = str(db.execute.call_args[0][0].compile(dialect=postgresql.dialect()))
    assert "server_created_at DESC NULLS LAST" in sql.split("ORDER BY")[1]
