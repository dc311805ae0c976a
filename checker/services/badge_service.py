"""
Codes badge imprimables : génération, vérification et rendu QR code.

Un code valide fait 20 caractères pris dans un alphabet sans caractères
ambigus (pas de 0/O, 1/I/l, 2/Z, 5/S, 8/B) et passe trois contrôles :
- Luhn sur l'index de chaque caractère dans l'alphabet
- Damm sur ces index modulo 10 (détecte les transpositions)
- aucun couple de caractères voisins dans l'alphabet (faute de frappe d'une touche)
"""

import io
import random
from typing import Optional

import qrcode

BADGE_ALPHABET = "346789ACDEFGHJKLMNPQRTUVWXY"
BADGE_LENGTH = 20

_CHAR_TO_NUM = {char: i for i, char in enumerate(BADGE_ALPHABET)}

_DAMM_MATRIX = [
    [0, 3, 1, 7, 5, 9, 8, 6, 4, 2],
    [7, 0, 9, 2, 1, 5, 4, 8, 6, 3],
    [4, 2, 0, 6, 8, 7, 1, 3, 5, 9],
    [1, 7, 5, 0, 9, 8, 3, 4, 2, 6],
    [6, 1, 2, 3, 0, 4, 5, 9, 7, 8],
    [3, 6, 7, 4, 2, 0, 9, 5, 8, 1],
    [5, 8, 6, 9, 7, 2, 0, 1, 3, 4],
    [8, 9, 4, 5, 3, 6, 2, 0, 1, 7],
    [9, 4, 3, 8, 6, 1, 7, 2, 0, 5],
    [2, 5, 8, 1, 4, 3, 6, 7, 9, 0],
]


def _luhn_ok(code: str) -> bool:
    total = 0
    for position, char in enumerate(reversed(code)):
        num = _CHAR_TO_NUM[char]
        if position % 2 == 1:
            num *= 2
            if num > 9:
                num -= 9
        total += num
    return total % 10 == 0


def _damm_ok(code: str) -> bool:
    interim = 0
    for char in code:
        interim = _DAMM_MATRIX[interim][_CHAR_TO_NUM[char] % 10]
    return interim == 0


def _has_adjacent_pair(code: str) -> bool:
    return any(
        abs(_CHAR_TO_NUM[a] - _CHAR_TO_NUM[b]) == 1
        for a, b in zip(code, code[1:])
    )


def verify_barcode(code: str) -> bool:
    if len(code) != BADGE_LENGTH:
        return False
    if any(char not in _CHAR_TO_NUM for char in code):
        return False
    return _luhn_ok(code) and _damm_ok(code) and not _has_adjacent_pair(code)


def generate_valid_barcode(rng: Optional[random.Random] = None) -> str:
    """
    Tire 18 caractères au hasard puis cherche les 2 derniers qui valident le code.
    Recommence avec un nouveau tirage si aucune paire ne convient.
    """
    rng = rng or random.SystemRandom()
    while True:
        body = "".join(rng.choice(BADGE_ALPHABET) for _ in range(BADGE_LENGTH - 2))
        for first in BADGE_ALPHABET:
            for second in BADGE_ALPHABET:
                candidate = body + first + second
                if verify_barcode(candidate):
                    return candidate


def render_badge_png(code: str) -> bytes:
    """Génère une image PNG du QR code encodant le code badge donné."""
    qr = qrcode.QRCode(version=1, box_size=10, border=4)
    qr.add_data(code)
    qr.make(fit=True)
    img = qr.make_image(fill_color="black", back_color="white")
    buf = io.BytesIO()
    img.save(buf, format="PNG")
    return buf.getvalue()
