"""Card number helpers."""

from typing import Optional

from ..core.constants import CARD_NUMBER_LENGTH


def bank_slug(card_number: str) -> Optional[str]:
    """Issuer identification number (first six digits), or None for short input."""
    if card_number is None or len(card_number) < 6:
        return None
    return card_number[:6]


def luhn_check(card_number: Optional[str]) -> bool:
    """Luhn checksum for a 16-digit card number.

    Anything that is not exactly 16 ASCII digits is rejected.
    """
    if (card_number is None or len(card_number) != CARD_NUMBER_LENGTH
            or not card_number.isascii() or not card_number.isdigit()):
        return False

    total = 0
    alternate = False
    for ch in reversed(card_number):
        n = int(ch)
        if alternate:
            n *= 2
            if n > 9:
                n -= 9
        total += n
        alternate = not alternate
    return total % 10 == 0


def format_card_number(number: str) -> str:
    """Group a 16-digit number as 'dddd dddd dddd dddd'; other lengths unchanged."""
    if len(number) != CARD_NUMBER_LENGTH:
        return number
    return " ".join(number[i:i + 4] for i in range(0, CARD_NUMBER_LENGTH, 4))
