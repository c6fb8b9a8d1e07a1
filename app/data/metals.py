"""Metal naming conventions used to derive purity and type multipliers."""
import re

# Gold karats and their purity fractions (jeweller's convention, not karat/24)
GOLD_KARATS = {
    24: 1.0,
    22: 0.916,
    18: 0.75,
    14: 0.585,
    10: 0.417,
    9: 0.375,
}

DEFAULT_PURITY = 0.75  # 18K when the name says nothing

# Alloy colour / metal family multipliers, matched on name substrings
TYPE_MULTIPLIERS = {
    'white': 1.1,
    'rose': 1.05,
}

PLATINUM_PURITY = 0.95
PLATINUM_MULTIPLIER = 1.4

_KARAT_RE = re.compile(r'(\d{1,2})\s*(?:k|kt|karat|carat)\b', re.IGNORECASE)


def get_karat(name: str) -> int | None:
    """Pull the karat out of names like '18K Yellow Gold' or '22 kt gold'."""
    match = _KARAT_RE.search(name or '')
    if not match:
        return None
    karat = int(match.group(1))
    return karat if karat in GOLD_KARATS else None


def get_karat_fraction(karat: int) -> float:
    """Get purity fraction for a gold karat value."""
    return GOLD_KARATS.get(karat, karat / 24)


def derive_metal_factors(name: str) -> tuple[float, float]:
    """Estimate (purity_factor, type_multiplier) from a metal type name.

    Used when the catalog row carries no explicit values, and for client-side
    placeholder estimates before the server answers.
    """
    lowered = (name or '').lower()

    if 'platinum' in lowered:
        return PLATINUM_PURITY, PLATINUM_MULTIPLIER

    karat = get_karat(name)
    purity = get_karat_fraction(karat) if karat else DEFAULT_PURITY

    multiplier = 1.0
    for keyword, value in TYPE_MULTIPLIERS.items():
        if keyword in lowered:
            multiplier = value
            break

    return purity, multiplier

