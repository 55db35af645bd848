"""
Synthetic Cohort - Statistical Analysis
=======================================

Descriptive statistics and hypothesis tests over a generated cohort table.
Answers the three capstone research questions:

1. Does more daily use go with higher loneliness? (Pearson r with CI, OLS slope)
2. Do people who compare themselves to others report more depression? (Welch t-test)
3. How many people who took a break felt better afterwards? (proportion)
"""

from dataclasses import dataclass
from typing import Dict, Tuple
import logging

import pandas as pd
from scipy import stats


logger = logging.getLogger(__name__)

MIN_ROWS = 3


# =============================================================================
# RESULT TYPES
# =============================================================================

@dataclass
class CorrelationResult:
    x: str
    y: str
    r: float
    p_value: float
    ci_low: float
    ci_high: float
    confidence: float
    n: int


@dataclass
class TTestResult:
    value: str
    group: str
    mean_yes: float
    mean_no: float
    n_yes: int
    n_no: int
    t_statistic: float
    p_value: float

    @property
    def difference(self) -> float:
        return self.mean_yes - self.mean_no


@dataclass
class RegressionResult:
    x: str
    y: str
    slope: float
    intercept: float
    r_squared: float
    p_value: float
    stderr: float
    n: int


@dataclass
class BreakOutcome:
    n_total: int
    n_took_break: int
    n_felt_better: int

    @property
    def break_rate(self) -> float:
        return self.n_took_break / self.n_total if self.n_total else float('nan')

    @property
    def felt_better_rate(self) -> float:
        return self.n_felt_better / self.n_took_break if self.n_took_break else float('nan')


# =============================================================================
# ANALYSES
# =============================================================================

def _paired(df: pd.DataFrame, x: str, y: str) -> Tuple[pd.Series, pd.Series]:
    clean = df[[x, y]].dropna()
    if len(clean) < MIN_ROWS:
        raise ValueError(f"Need at least {MIN_ROWS} complete rows for {x} vs {y}, got {len(clean)}")
    return clean[x].astype(float), clean[y].astype(float)


def describe(df: pd.DataFrame) -> pd.DataFrame:
    """Summary statistics for every column (felt_better over breakers only)"""
    return df.astype(float).describe().T


def correlation(df: pd.DataFrame, x: str, y: str, confidence: float = 0.95) -> CorrelationResult:
    """Pearson correlation with a Fisher-z confidence interval"""
    xs, ys = _paired(df, x, y)
    res = stats.pearsonr(xs, ys)
    ci = res.confidence_interval(confidence_level=confidence)
    logger.debug(f"pearsonr({x}, {y}) = {res.statistic:.3f}")
    return CorrelationResult(
        x=x, y=y,
        r=float(res.statistic),
        p_value=float(res.pvalue),
        ci_low=float(ci.low),
        ci_high=float(ci.high),
        confidence=confidence,
        n=len(xs),
    )


def compare_means(df: pd.DataFrame, value: str, group: str) -> TTestResult:
    """Welch two-sample t-test of ``value`` between group==1 and group==0"""
    clean = df[[value, group]].dropna()
    yes = clean.loc[clean[group] == 1, value].astype(float)
    no = clean.loc[clean[group] == 0, value].astype(float)
    if len(yes) < 2 or len(no) < 2:
        raise ValueError(f"Need at least 2 rows in each {group} group, got {len(yes)} and {len(no)}")

    t_stat, p_val = stats.ttest_ind(yes, no, equal_var=False)
    return TTestResult(
        value=value, group=group,
        mean_yes=float(yes.mean()),
        mean_no=float(no.mean()),
        n_yes=len(yes),
        n_no=len(no),
        t_statistic=float(t_stat),
        p_value=float(p_val),
    )


def regression(df: pd.DataFrame, x: str, y: str) -> RegressionResult:
    """Simple least-squares regression of y on x"""
    xs, ys = _paired(df, x, y)
    res = stats.linregress(xs, ys)
    return RegressionResult(
        x=x, y=y,
        slope=float(res.slope),
        intercept=float(res.intercept),
        r_squared=float(res.rvalue ** 2),
        p_value=float(res.pvalue),
        stderr=float(res.stderr),
        n=len(xs),
    )


def break_outcomes(df: pd.DataFrame) -> BreakOutcome:
    took = df['took_break'] == 1
    return BreakOutcome(
        n_total=len(df),
        n_took_break=int(took.sum()),
        n_felt_better=int((df.loc[took, 'felt_better'] == 1).sum()),
    )


def research_questions(df: pd.DataFrame, confidence: float = 0.95) -> Dict[str, object]:
    """Run the three capstone questions over one cohort"""
    if len(df) < MIN_ROWS:
        raise ValueError(f"Need at least {MIN_ROWS} rows, got {len(df)}")

    results = {
        'hours_vs_loneliness': correlation(df, 'daily_hours', 'loneliness', confidence),
        'hours_vs_loneliness_fit': regression(df, 'daily_hours', 'loneliness'),
        'depression_by_comparison': compare_means(df, 'depression', 'compare_self'),
        'break_outcome': break_outcomes(df),
    }
    logger.info(
        f"RQ1 r={results['hours_vs_loneliness'].r:.3f}, "
        f"RQ2 diff={results['depression_by_comparison'].difference:+.2f}, "
        f"RQ3 felt better={results['break_outcome'].felt_better_rate:.1%}"
    )
    return results
