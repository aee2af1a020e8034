"""Convert probability + hatching combinations into categorical risk levels."""

from __future__ import annotations

from config import (
    CATEGORICAL_ORDER,
    HATCHING_PREFIX,
    NO_HATCHING,
    RISK_NAMES,
    USER_DRAWN_LEVEL,
)


# ---------------------------------------------------------------------------
# Conversion tables: probability -> {hatching level -> categorical level}
# ---------------------------------------------------------------------------

TORNADO_TABLE: dict[str, dict[str, str]] = {
    "2%":  {"CIG0": "MRGL", "CIG1": "MRGL", "CIG2": "SLGT", "CIG3": "SLGT"},
    "5%":  {"CIG0": "SLGT", "CIG1": "SLGT", "CIG2": "ENH",  "CIG3": "ENH"},
    "10%": {"CIG0": "ENH",  "CIG1": "ENH",  "CIG2": "ENH",  "CIG3": "ENH"},
    "15%": {"CIG0": "ENH",  "CIG1": "MDT",  "CIG2": "MDT",  "CIG3": "MDT"},
    "30%": {"CIG0": "MDT",  "CIG1": "HIGH", "CIG2": "HIGH", "CIG3": "HIGH"},
    "45%": {"CIG0": "HIGH", "CIG1": "HIGH", "CIG2": "HIGH", "CIG3": "HIGH"},
    "60%": {"CIG0": "HIGH", "CIG1": "HIGH", "CIG2": "HIGH", "CIG3": "HIGH"},
}

WIND_TABLE: dict[str, dict[str, str]] = {
    "5%":  {"CIG0": "MRGL", "CIG1": "MRGL", "CIG2": "SLGT", "CIG3": "SLGT"},
    "15%": {"CIG0": "SLGT", "CIG1": "SLGT", "CIG2": "ENH",  "CIG3": "ENH"},
    "30%": {"CIG0": "ENH",  "CIG1": "ENH",  "CIG2": "ENH",  "CIG3": "ENH"},
    "45%": {"CIG0": "ENH",  "CIG1": "MDT",  "CIG2": "MDT",  "CIG3": "HIGH"},
    "60%": {"CIG0": "MDT",  "CIG1": "HIGH", "CIG2": "HIGH", "CIG3": "HIGH"},
    "75%": {"CIG0": "MDT",  "CIG1": "HIGH", "CIG2": "HIGH", "CIG3": "HIGH"},
    "90%": {"CIG0": "MDT",  "CIG1": "HIGH", "CIG2": "HIGH", "CIG3": "HIGH"},
}

# Hail never reaches HIGH
HAIL_TABLE: dict[str, dict[str, str]] = {
    "5%":  {"CIG0": "MRGL", "CIG1": "MRGL", "CIG2": "SLGT"},
    "15%": {"CIG0": "SLGT", "CIG1": "SLGT", "CIG2": "ENH"},
    "30%": {"CIG0": "ENH",  "CIG1": "ENH",  "CIG2": "ENH"},
    "45%": {"CIG0": "ENH",  "CIG1": "MDT",  "CIG2": "MDT"},
    "60%": {"CIG0": "MDT",  "CIG1": "MDT",  "CIG2": "MDT"},
}

# Day 3 tops out at MDT
TOTAL_SEVERE_TABLE: dict[str, dict[str, str]] = {
    "5%":  {"CIG0": "MRGL", "CIG1": "MRGL", "CIG2": "SLGT"},
    "15%": {"CIG0": "SLGT", "CIG1": "SLGT", "CIG2": "ENH"},
    "30%": {"CIG0": "ENH",  "CIG1": "ENH",  "CIG2": "MDT"},
    "45%": {"CIG0": "ENH",  "CIG1": "MDT",  "CIG2": "MDT"},
    "60%": {"CIG0": "MDT",  "CIG1": "MDT",  "CIG2": "MDT"},
}

CONVERSION_TABLES: dict[str, dict[str, dict[str, str]]] = {
    "tornado": TORNADO_TABLE,
    "wind": WIND_TABLE,
    "hail": HAIL_TABLE,
    "totalSevere": TOTAL_SEVERE_TABLE,
}

# Legacy "significant" labels ("30#") are a probability drawn fully inside CIG1
_SIGNIFICANT_SUFFIX = "#"
_SIGNIFICANT_HATCHING = "CIG1"


def classify(outlook_type: str, probability: str, hatching: str = NO_HATCHING) -> str:
    """Return the categorical risk for a probability piece at a hatching level.

    Any combination missing from the conversion tables stays "TSTM",
    meaning the piece is not promoted into the categorical outlook.
    """
    table = CONVERSION_TABLES.get(outlook_type)
    if table is None:
        return USER_DRAWN_LEVEL

    if probability.endswith(_SIGNIFICANT_SUFFIX):
        probability = probability[:-1] + "%"
        hatching = max(hatching, _SIGNIFICANT_HATCHING, key=hatching_rank)

    return table.get(probability, {}).get(hatching, USER_DRAWN_LEVEL)


def is_hatching_key(key: str) -> bool:
    """True for outlook map keys that hold hatching overlays rather than probabilities."""
    return key.startswith(HATCHING_PREFIX)


def hatching_rank(level: str) -> int:
    """Numeric rank of a CIG level (CIG0 -> 0). Unknown levels rank lowest."""
    suffix = level[len(HATCHING_PREFIX):] if is_hatching_key(level) else ""
    return int(suffix) if suffix.isdigit() else -1


def risk_rank(level: str) -> int:
    return CATEGORICAL_ORDER.get(level, -1)


def risk_display_name(level: str) -> str:
    """Convert a categorical level to its display string."""
    return RISK_NAMES.get(level, f"Unknown ({level})")


if __name__ == "__main__":
    for outlook_type, table in CONVERSION_TABLES.items():
        print(f"  {outlook_type}:")
        for probability, row in table.items():
            cells = ", ".join(f"{cig}={lvl}" for cig, lvl in row.items())
            print(f"    {probability:>4}  {cells}")
