"""
Schémas Pydantic pour les utilisateurs (personnel) et les visiteurs.
"""

import re
import uuid
from typing import Optional

from pydantic import BaseModel, field_validator, model_validator

VISIT_PURPOSES = ["Meeting", "Interview", "Delivery", "Contractor", "Maintenance", "Vendor", "Other"]
VISITOR_BARCODE_REGEX = re.compile(r"^[A-Za-z0-9]{10,20}$")


class UserCreate(BaseModel):
    """Création d'un membre du personnel (premier login ou ajout administrateur)."""
    name: str
    email: Optional[str] = None
    barcode: str
    is_admin: bool = False
    dept_id: Optional[uuid.UUID] = None

    @field_validator("name", "barcode")
    @classmethod
    def not_empty(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Ce champ ne peut pas être vide.")
        return v.strip()


class UserUpdate(BaseModel):
    """Actions d'administration : renommer, basculer admin / autorisé."""
    name: Optional[str] = None
    is_admin: Optional[bool] = None
    is_auth: Optional[bool] = None

    @field_validator("name")
    @classmethod
    def name_not_empty(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and not v.strip():
            raise ValueError("Le nom ne peut pas être vide.")
        return v.strip() if v is not None else v


class VisitorCreate(BaseModel):
    """Formulaire d'enregistrement visiteur de la borne."""
    name: str
    purpose: str
    barcode: str
    laptop_serial: Optional[str] = None

    @field_validator("name")
    @classmethod
    def name_required(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Le nom est obligatoire.")
        return v.strip()

    @field_validator("purpose")
    @classmethod
    def valid_purpose(cls, v: str) -> str:
        if v not in VISIT_PURPOSES:
            raise ValueError(f"Motif de visite invalide. Valeurs acceptées : {VISIT_PURPOSES}")
        return v

    @field_validator("barcode")
    @classmethod
    def valid_barcode(cls, v: str) -> str:
        v = v.strip()
        has_letters = any(c.isalpha() for c in v)
        has_digits = any(c.isdigit() for c in v)
        if not (VISITOR_BARCODE_REGEX.match(v) and has_letters and has_digits):
            raise ValueError("Le badge doit contenir 10 à 20 caractères, avec des lettres et des chiffres.")
        return v.upper()

    @field_validator("laptop_serial")
    @classmethod
    def blank_serial_is_none(cls, v: Optional[str]) -> Optional[str]:
        if v is None or not v.strip():
            return None
        return v.strip()

    @model_validator(mode="after")
    def barcode_differs_from_name(self) -> "VisitorCreate":
        if self.name.lower() == self.barcode.lower():
            raise ValueError("Le badge doit être différent du nom.")
        return self


class UserResponse(BaseModel):
    id: uuid.UUID
    name: str
    email: Optional[str]
    barcode: str
    is_admin: bool
    is_auth: bool
    dept_id: Optional[uuid.UUID] = None
    laptop_serial: Optional[str] = None
    purpose: Optional[str] = None
    created_at: Optional[int] = None

    model_config = {"from_attributes": True}
