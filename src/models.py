"""
Synthetic Cohort - Data Models & Schemas
========================================
Defines the synthetic individual record and the table schema.
Implements Chain-of-Verification through record constraints.
"""

from dataclasses import dataclass
from typing import Optional, List
import logging

import pandas as pd


logger = logging.getLogger(__name__)


# ============================================================
# SCALE CONSTANTS
# ============================================================

SCORE_MIN = 1.0
SCORE_MAX = 10.0

NA_MARKER = "NA"

# Output order: core fields first, supplementary demographics last
COLUMN_ORDER = [
    'daily_hours',
    'loneliness',
    'depression',
    'anxiety',
    'compare_self',
    'took_break',
    'felt_better',
    'age',
    'platforms_used',
]

SCORE_COLUMNS = ['loneliness', 'depression', 'anxiety']


# ============================================================
# DATACLASS MODEL - With validation
# ============================================================

@dataclass(frozen=True)
class SyntheticIndividual:
    """
    One synthetic respondent.

    Records are created once by the generator and never mutated.
    ``felt_better`` is None exactly when ``took_break`` is False.
    """
    daily_hours: float
    loneliness: float
    depression: float
    anxiety: float
    compare_self: bool
    took_break: bool
    felt_better: Optional[bool] = None
    age: int = 20
    platforms_used: int = 1

    def __post_init__(self):
        """Chain-of-Verification: Validate constraints"""
        assert self.daily_hours >= 0, f"Daily hours {self.daily_hours} must be >= 0"
        for name in SCORE_COLUMNS:
            value = getattr(self, name)
            assert SCORE_MIN <= value <= SCORE_MAX, \
                f"{name} {value} out of range [{SCORE_MIN:g}, {SCORE_MAX:g}]"
        assert (self.felt_better is None) == (not self.took_break), \
            "felt_better must be set if and only if took_break is True"

    def to_dict(self) -> dict:
        return {
            'daily_hours': self.daily_hours,
            'loneliness': self.loneliness,
            'depression': self.depression,
            'anxiety': self.anxiety,
            'compare_self': int(self.compare_self),
            'took_break': int(self.took_break),
            'felt_better': None if self.felt_better is None else int(self.felt_better),
            'age': self.age,
            'platforms_used': self.platforms_used,
        }

    @classmethod
    def from_dict(cls, row: dict) -> 'SyntheticIndividual':
        felt_better = row['felt_better']
        if felt_better is None or pd.isna(felt_better):
            felt_better = None
        else:
            felt_better = bool(int(felt_better))
        return cls(
            daily_hours=float(row['daily_hours']),
            loneliness=float(row['loneliness']),
            depression=float(row['depression']),
            anxiety=float(row['anxiety']),
            compare_self=bool(int(row['compare_self'])),
            took_break=bool(int(row['took_break'])),
            felt_better=felt_better,
            age=int(row['age']),
            platforms_used=int(row['platforms_used']),
        )


# ============================================================
# SCHEMA DEFINITIONS - For DataFrame validation
# ============================================================

COHORT_SCHEMA = {
    'daily_hours': 'float64',
    'loneliness': 'float64',
    'depression': 'float64',
    'anxiety': 'float64',
    'compare_self': 'int8',
    'took_break': 'int8',
    'felt_better': 'Int8',  # nullable: NA when no break was taken
    'age': 'int16',
    'platforms_used': 'int16',
}


def to_dataframe(records: List[SyntheticIndividual]) -> pd.DataFrame:
    """Build a typed table from records, columns in output order"""
    df = pd.DataFrame([r.to_dict() for r in records], columns=COLUMN_ORDER)
    return apply_schema(df, COHORT_SCHEMA)


def from_dataframe(df: pd.DataFrame) -> List[SyntheticIndividual]:
    return [SyntheticIndividual.from_dict(row) for row in df.to_dict('records')]


def validate_dataframe(df: pd.DataFrame, schema: dict, table_name: str) -> list:
    """
    Chain-of-Verification: Validate DataFrame against schema
    Returns list of validation errors
    """
    errors = []

    missing_cols = set(schema.keys()) - set(df.columns)
    if missing_cols:
        errors.append(f"{table_name}: Missing columns: {sorted(missing_cols)}")

    extra_cols = set(df.columns) - set(schema.keys())
    if extra_cols:
        errors.append(f"{table_name}: Unexpected columns: {sorted(extra_cols)}")

    # felt_better is the only column allowed to hold nulls
    for col in schema:
        if col != 'felt_better' and col in df.columns and df[col].isnull().any():
            errors.append(f"{table_name}: Null values in {col}")

    return errors


def apply_schema(df: pd.DataFrame, schema: dict, strict: bool = False) -> pd.DataFrame:
    """
    Apply schema types to DataFrame.

    With ``strict`` a failed conversion raises ValueError instead of
    leaving the column as it was.
    """
    for col, dtype in schema.items():
        if col in df.columns:
            try:
                df[col] = df[col].astype(dtype)
            except (TypeError, ValueError) as e:
                if strict:
                    raise ValueError(f"Column {col} cannot be read as {dtype}: {e}") from e
                logger.warning(f"Could not convert {col} to {dtype}: {e}")
    return df
