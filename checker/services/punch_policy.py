"""
Politique de pointage : décide si un scan est une entrée, une sortie ou un rejet.

Fonctions pures, sans accès à la base : elles reçoivent l'historique déjà lu
et l'instant courant (epoch ms), ce qui les rend déterministes en test.

Ordre de priorité de decide_action :
1. Action forcée (administrateur ou nettoyage système) → appliquée telle quelle
2. Aucun pointage antérieur → checkin
3. Dernier pointage trop ancien (>= RESET_HOURS) → checkin (sortie oubliée la veille)
4. Bascule : classe opposée à celle du dernier pointage
5. Garde anti-rebond : un scan non forcé moins de ALLOW_OPPOSITE_MINUTES après
   le dernier pointage est rejeté, avec le nombre de minutes restantes
"""

import math
import re
from functools import cmp_to_key
from typing import Iterable, Optional

from checker.config import settings
from checker.schemas.punch import (
    ADMIN_TYPES,
    CHECK_IN_TYPES,
    SYSTEM_TYPES,
    CheckActionType,
    Decision,
    DecisionReason,
    PunchRecord,
)
from checker.timeutils import MS_PER_HOUR, MS_PER_MINUTE

# Lus une seule fois au chargement du module
RESET_HOURS = settings.RESET_HOURS
ALLOW_OPPOSITE_MINUTES = settings.ALLOW_OPPOSITE_MINUTES

# Préfixe numérique connu → longueur totale de l'identifiant qui commence par ce préfixe
ID_PREFIX_LENGTHS = {"100": 9, "21": 8, "20": 8, "104": 9, "600": 9}

_LETTER_REGEX = re.compile(r"[A-Za-z]")


def extract_user_id(scanned_text: str) -> str:
    """
    Extrait l'identifiant d'un texte brut de lecteur de badge.

    Un lecteur magnétique entoure l'identifiant de codes de format. Si le texte
    contient une lettre, il est considéré comme déjà propre et renvoyé tel quel.
    Sinon on retient l'occurrence la plus à gauche d'un préfixe connu (à égalité,
    la longueur déclarée la plus grande) et on renvoie la sous-chaîne de la
    longueur associée. Sans correspondance, le texte est renvoyé inchangé.
    """
    if _LETTER_REGEX.search(scanned_text):
        return scanned_text

    best: Optional[tuple[int, int]] = None  # (index, longueur)
    for prefix, length in ID_PREFIX_LENGTHS.items():
        start = scanned_text.find(prefix)
        while start != -1:
            if start + length <= len(scanned_text):
                if best is None or start < best[0] or (start == best[0] and length > best[1]):
                    best = (start, length)
                break  # Seule la première occurrence qui tient dans le texte compte
            start = scanned_text.find(prefix, start + 1)

    if best is None:
        return scanned_text
    start, length = best
    return scanned_text[start:start + length]


def _newest_first(a, b) -> int:
    # server_created_at fait foi ; repli sur timestamp si l'un des deux en est dépourvu
    if a.server_created_at is not None and b.server_created_at is not None:
        left, right = a.server_created_at, b.server_created_at
    else:
        left, right = a.timestamp, b.timestamp
    if left > right:
        return -1
    if left < right:
        return 1
    return 0


def get_most_reliable_punch(punches: Iterable):
    """Retourne le pointage le plus récent selon l'horloge serveur, ou None si la liste est vide."""
    ordered = sorted(punches, key=cmp_to_key(_newest_first))
    return ordered[0] if ordered else None


def is_check_in(action: CheckActionType) -> bool:
    return CheckActionType(action) in CHECK_IN_TYPES


def is_checked_in(punches: Iterable) -> bool:
    """Vrai si le dernier pointage fiable appartient à la classe entrée."""
    last = get_most_reliable_punch(punches)
    return last is not None and is_check_in(last.type)


def decide_action(
    last_punch: Optional[PunchRecord],
    now_ms: int,
    force: Optional[CheckActionType] = None,
    reset_hours: Optional[int] = None,
    allow_opposite_minutes: Optional[int] = None,
) -> Decision:
    """
    Décide du prochain pointage à partir du dernier pointage fiable.

    Ne lève jamais d'exception pour un rejet : un scan trop rapproché renvoie
    une Decision avec accepted=False et minutes_remaining renseigné.
    """
    if reset_hours is None:
        reset_hours = RESET_HOURS
    if allow_opposite_minutes is None:
        allow_opposite_minutes = ALLOW_OPPOSITE_MINUTES

    if force is not None:
        force = CheckActionType(force)
        return Decision(
            accepted=True,
            action=force,
            reason=DecisionReason.FORCED,
            is_admin_generated=force in ADMIN_TYPES,
            is_system_generated=force in SYSTEM_TYPES,
        )

    if last_punch is None:
        return Decision(accepted=True, action=CheckActionType.CHECK_IN, reason=DecisionReason.FIRST_PUNCH)

    elapsed_ms = now_ms - last_punch.timestamp
    if elapsed_ms >= reset_hours * MS_PER_HOUR:
        return Decision(accepted=True, action=CheckActionType.CHECK_IN, reason=DecisionReason.STALE_RESET)

    action = CheckActionType.CHECK_OUT if is_check_in(last_punch.type) else CheckActionType.CHECK_IN

    window_ms = allow_opposite_minutes * MS_PER_MINUTE
    if window_ms > 0 and elapsed_ms < window_ms:
        remaining = math.ceil((window_ms - elapsed_ms) / MS_PER_MINUTE)
        return Decision(
            accepted=False,
            action=action,
            reason=DecisionReason.TOO_SOON,
            minutes_remaining=min(remaining, allow_opposite_minutes),
        )

    return Decision(accepted=True, action=action, reason=DecisionReason.TOGGLE)


def build_punch_fields(
    user_id,
    decision: Decision,
    now_ms: int,
    device: Optional[str] = None,
) -> PunchRecord:
    """
    Construit le nouveau pointage. server_created_at reçoit aussi now_ms, mais
    n'est pas transmis à l'insertion : PostgreSQL attribue la valeur qui fait foi.
    """
    return PunchRecord(
        user_id=user_id,
        type=decision.action,
        timestamp=now_ms,
        server_created_at=now_ms,
        is_admin_generated=decision.is_admin_generated,
        is_system_generated=decision.is_system_generated,
        device=device,
    )
