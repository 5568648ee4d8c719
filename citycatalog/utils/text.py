"""Text normalization shared by the storage layer and incoming queries."""

from __future__ import annotations

import unicodedata

__all__ = ["build_display_name", "display_sort_key", "fold", "searchable_text"]

UNKNOWN_CITY = "Unknown City"
UNKNOWN_COUNTRY = "Unknown Country"

# Letters that carry no combining mark under NFD and would otherwise survive
# folding untouched (e.g. "Łódź" must match "lodz").
_TRANSLITERATIONS = str.maketrans(
    {
        "ł": "l",
        "ø": "o",
        "đ": "d",
        "þ": "th",
        "ð": "d",
        "æ": "ae",
        "œ": "oe",
        "ı": "i",
    }
)


def fold(value: str) -> str:
    """Return the comparison-stable form of ``value``.

    The string is case folded, decomposed (NFD), stripped of non-spacing marks,
    transliterated for the handful of letters that do not decompose and finally
    recomposed (NFC). Applying the function twice yields the same result, so it
    is safe to fold stored values and user queries independently.

    Examples:
        - ``"São Paulo"`` -> ``"sao paulo"``
        - ``"ÁLAVA"`` -> ``"alava"``
        - ``"Łódź"`` -> ``"lodz"``
    """

    decomposed = unicodedata.normalize("NFD", value.casefold())
    stripped = "".join(
        char for char in decomposed if unicodedata.category(char) != "Mn"
    )
    return unicodedata.normalize("NFC", stripped.translate(_TRANSLITERATIONS))


def searchable_text(name: str, country: str) -> str:
    """Return the folded ``"name country"`` string used for prefix matching."""

    return fold(f"{name} {country}")


def build_display_name(name: str, country: str) -> str:
    """Return ``"name, country"``; placeholders only when both parts are blank."""

    if not name and not country:
        return f"{UNKNOWN_CITY}, {UNKNOWN_COUNTRY}"
    return f"{name}, {country}"


def display_sort_key(display_name: str) -> str:
    """Case-insensitive ordering key for display names.

    Only case is removed: accented initials keep their code point and therefore
    sort after the unaccented ASCII letters.
    """

    return display_name.casefold()
