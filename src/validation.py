"""
Synthetic Cohort - Validation Module
====================================
Chain-of-Verification for synthetic data quality.
"""

import pandas as pd
from typing import Dict, List, Optional
from dataclasses import dataclass
from enum import Enum

from cohort_config import CohortConfig
from models import COHORT_SCHEMA, SCORE_COLUMNS, SCORE_MIN, SCORE_MAX, validate_dataframe


class ValidationSeverity(Enum):
    PASS = "✅ PASS"
    WARNING = "⚠️ WARNING"
    FAIL = "❌ FAIL"
    INFO = "ℹ️ INFO"


@dataclass
class ValidationResult:
    name: str
    severity: ValidationSeverity
    message: str
    expected: Optional[str] = None
    actual: Optional[str] = None


class CohortValidator:
    """Chain-of-Verification for a synthetic cohort table"""

    def __init__(self, config: Optional[CohortConfig] = None):
        self.config = config if config is not None else CohortConfig()
        self.results: List[ValidationResult] = []

    def validate_all(self, df: pd.DataFrame) -> List[ValidationResult]:
        self.results = []
        self._validate_schema(df)
        if any(r.severity == ValidationSeverity.FAIL for r in self.results):
            return self.results
        self._validate_bounds(df)
        self._validate_flags(df)
        self._validate_missingness(df)
        self._validate_tendencies(df)
        return self.results

    def _validate_schema(self, df: pd.DataFrame):
        errors = validate_dataframe(df, COHORT_SCHEMA, "cohort")

        self.results.append(ValidationResult(
            name="Schema: cohort",
            severity=ValidationSeverity.PASS if not errors else ValidationSeverity.FAIL,
            message="All required columns present" if not errors else "; ".join(errors)
        ))

    def _validate_bounds(self, df: pd.DataFrame):
        hours = self.config.daily_hours
        invalid = ((df['daily_hours'] < hours.lower) | (df['daily_hours'] > hours.upper)).sum()
        self.results.append(ValidationResult(
            name="Bounds: daily_hours",
            severity=ValidationSeverity.PASS if invalid == 0 else ValidationSeverity.FAIL,
            message=f"{invalid} violations",
            expected=f"[{hours.lower:g}, {hours.upper:g}]",
            actual=f"[{df['daily_hours'].min():g}, {df['daily_hours'].max():g}]"
        ))

        for col in SCORE_COLUMNS:
            invalid = ((df[col] < SCORE_MIN) | (df[col] > SCORE_MAX)).sum()
            self.results.append(ValidationResult(
                name=f"Bounds: {col}",
                severity=ValidationSeverity.PASS if invalid == 0 else ValidationSeverity.FAIL,
                message=f"{invalid} violations",
                expected=f"[{SCORE_MIN:g}, {SCORE_MAX:g}]"
            ))

    def _validate_flags(self, df: pd.DataFrame):
        for col in ['compare_self', 'took_break']:
            invalid = (~df[col].isin([0, 1])).sum()
            self.results.append(ValidationResult(
                name=f"Flag: {col}",
                severity=ValidationSeverity.PASS if invalid == 0 else ValidationSeverity.FAIL,
                message=f"{invalid} values outside 0/1"
            ))

        felt = df['felt_better'].dropna()
        invalid = (~felt.isin([0, 1])).sum()
        self.results.append(ValidationResult(
            name="Flag: felt_better",
            severity=ValidationSeverity.PASS if invalid == 0 else ValidationSeverity.FAIL,
            message=f"{invalid} values outside 0/1/NA"
        ))

    def _validate_missingness(self, df: pd.DataFrame):
        # felt_better is defined if and only if a break was taken
        defined = df['felt_better'].notna()
        broke = df['took_break'] == 1
        invalid = (defined != broke).sum()
        self.results.append(ValidationResult(
            name="Rule: felt_better only after a break",
            severity=ValidationSeverity.PASS if invalid == 0 else ValidationSeverity.FAIL,
            message=f"{invalid} violations"
        ))

    def _validate_tendencies(self, df: pd.DataFrame):
        min_rows = self.config.validation.min_rows_for_tendency
        if len(df) < min_rows:
            self.results.append(ValidationResult(
                name="Tendency checks",
                severity=ValidationSeverity.INFO,
                message=f"Skipped: {len(df)} rows (< {min_rows})"
            ))
            return

        q1, q3 = df['daily_hours'].quantile([0.25, 0.75])
        low = df.loc[df['daily_hours'] <= q1, 'loneliness'].mean()
        high = df.loc[df['daily_hours'] >= q3, 'loneliness'].mean()
        gap = high - low
        self.results.append(ValidationResult(
            name="Tendency: loneliness by usage quartile",
            severity=(ValidationSeverity.PASS
                      if gap > self.config.validation.quartile_gap_floor
                      else ValidationSeverity.WARNING),
            message=f"Top quartile {high:.2f} vs bottom quartile {low:.2f}",
            expected="top > bottom",
            actual=f"gap {gap:+.2f}"
        ))

        self._compare_groups(df, 'depression', 'compare_self', "Tendency: depression by comparison")

        distress = df[['loneliness', 'depression']].mean(axis=1)
        took = distress[df['took_break'] == 1]
        kept = distress[df['took_break'] == 0]
        if took.empty or kept.empty:
            self.results.append(ValidationResult(
                name="Tendency: distress by break",
                severity=ValidationSeverity.INFO,
                message="One group is empty"
            ))
        else:
            self.results.append(ValidationResult(
                name="Tendency: distress by break",
                severity=ValidationSeverity.PASS if took.mean() > kept.mean() else ValidationSeverity.WARNING,
                message=f"Break {took.mean():.2f} vs no break {kept.mean():.2f}",
                expected="break > no break"
            ))

    def _compare_groups(self, df: pd.DataFrame, value: str, group: str, name: str):
        yes = df.loc[df[group] == 1, value]
        no = df.loc[df[group] == 0, value]
        if yes.empty or no.empty:
            self.results.append(ValidationResult(
                name=name,
                severity=ValidationSeverity.INFO,
                message="One group is empty"
            ))
            return
        self.results.append(ValidationResult(
            name=name,
            severity=ValidationSeverity.PASS if yes.mean() > no.mean() else ValidationSeverity.WARNING,
            message=f"{group}=1 {yes.mean():.2f} vs {group}=0 {no.mean():.2f}",
            expected=f"{group}=1 > {group}=0"
        ))

    def get_summary(self) -> Dict:
        return {
            'total': len(self.results),
            'passed': sum(1 for r in self.results if r.severity == ValidationSeverity.PASS),
            'warnings': sum(1 for r in self.results if r.severity == ValidationSeverity.WARNING),
            'failed': sum(1 for r in self.results if r.severity == ValidationSeverity.FAIL)
        }
