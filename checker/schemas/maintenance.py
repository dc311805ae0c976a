"""
Schémas Pydantic pour la sortie automatique des pointages oubliés.
"""

from typing import List

from pydantic import BaseModel


class AutoCheckoutError(BaseModel):
    user_name: str
    reason: str


class AutoCheckoutReport(BaseModel):
    """Rapport d'un passage du nettoyage automatique."""
    users_scanned: int
    checked_out: List[str]            # Noms des utilisateurs sortis par le système
    errors: List[AutoCheckoutError]
