"""
Synthetic Cohort - Data Generation Engine
=========================================
Simulates social-media use and mental-health indicators as a chain of
noise-perturbed conditional draws, with Chain-of-Verification logging.

Each call to ``generate`` owns a fresh ``numpy.random.Generator`` seeded
from the caller's seed, so identical (count, seed, config) always yield
identical records. A Generator passed to ``generate_individual`` must not be
shared between concurrent callers.
"""

import argparse
import logging
import numbers
from pathlib import Path
from typing import List, Optional, Union

import numpy as np
import pandas as pd
from scipy.special import expit

from cohort_config import CohortConfig, AffineTerm, load_config
from models import (
    SyntheticIndividual, COHORT_SCHEMA, COLUMN_ORDER, NA_MARKER,
    SCORE_MIN, SCORE_MAX, to_dataframe, apply_schema,
)


logger = logging.getLogger(__name__)

SEED_MODULUS = 2 ** 64


class InvalidArgumentError(ValueError):
    """Raised for a bad record count or seed."""


def _check_integer(name: str, value, minimum: Optional[int] = None) -> int:
    if isinstance(value, bool) or not isinstance(value, numbers.Integral):
        raise InvalidArgumentError(f"{name} must be an integer, got {value!r}")
    if minimum is not None and value < minimum:
        raise InvalidArgumentError(f"{name} must be >= {minimum}, got {value}")
    return int(value)


def probability(logit: float) -> float:
    """Logistic transform, clamped to [0, 1] before any Bernoulli draw"""
    return float(np.clip(expit(logit), 0.0, 1.0))


class CohortGenerator:
    """
    Engine for generating synthetic social-media / mental-health cohorts.

    Design Principles:
    1. Reproducibility via an explicit random source per call
    2. Chain-of-Verification after each cohort
    3. Configurable via YAML (see configs/)
    """

    def __init__(self, config: Optional[CohortConfig] = None, seed: Optional[int] = None):
        self.config = config if config is not None else CohortConfig()
        self.seed = _check_integer('seed', self.config.seed if seed is None else seed)

    @classmethod
    def from_yaml(cls, config_path: Union[str, Path], seed: Optional[int] = None) -> 'CohortGenerator':
        return cls(load_config(Path(config_path)), seed=seed)

    # ============================================================
    # INDIVIDUAL GENERATION
    # ============================================================

    def _round(self, value: float) -> float:
        return round(float(value), self.config.precision)

    def _score(self, rng: np.random.Generator, term: AffineTerm, values: dict) -> float:
        """Affine score plus noise, rounded, then truncated to the 1-10 scale"""
        raw = term.evaluate(values) + rng.normal(0.0, term.noise_sd)
        return float(np.clip(self._round(raw), SCORE_MIN, SCORE_MAX))

    def _bernoulli(self, rng: np.random.Generator, p: float) -> bool:
        return bool(rng.random() < p)

    def generate_individual(self, rng: np.random.Generator) -> SyntheticIndividual:
        """Draw one record; consumes rng in the documented draw order"""
        cfg = self.config
        values = {}

        hours_cfg = cfg.daily_hours
        hours = self._round(rng.normal(hours_cfg.mean, hours_cfg.sd))
        values['daily_hours'] = float(np.clip(hours, hours_cfg.lower, hours_cfg.upper))

        p_compare = probability(cfg.compare_self.evaluate(values))
        values['compare_self'] = self._bernoulli(rng, p_compare)

        values['loneliness'] = self._score(rng, cfg.loneliness, values)
        values['depression'] = self._score(rng, cfg.depression, values)

        values['platforms_used'] = int(
            rng.integers(cfg.platforms_used.low, cfg.platforms_used.high + 1)
        )
        values['anxiety'] = self._score(rng, cfg.anxiety, values)

        p_break = probability(cfg.took_break.evaluate(values))
        values['took_break'] = self._bernoulli(rng, p_break)

        felt_better = None
        if values['took_break']:
            felt_better = self._bernoulli(rng, cfg.felt_better_probability)

        # nothing depends on age
        values['age'] = int(rng.integers(cfg.age.low, cfg.age.high + 1))

        logger.debug(
            f"hours={values['daily_hours']} p_compare={p_compare:.3f} "
            f"p_break={p_break:.3f} felt_better={felt_better}"
        )

        return SyntheticIndividual(
            daily_hours=values['daily_hours'],
            loneliness=values['loneliness'],
            depression=values['depression'],
            anxiety=values['anxiety'],
            compare_self=values['compare_self'],
            took_break=values['took_break'],
            felt_better=felt_better,
            age=values['age'],
            platforms_used=values['platforms_used'],
        )

    def generate(self, count: Optional[int] = None) -> List[SyntheticIndividual]:
        """Generate ``count`` records (defaults to the configured size)"""
        count = _check_integer('count', self.config.size if count is None else count, minimum=1)
        # any integer seed maps onto numpy's non-negative entropy range
        rng = np.random.default_rng(self.seed % SEED_MODULUS)

        logger.info(f"Generating cohort of {count:,} individuals (seed={self.seed})...")
        records = [self.generate_individual(rng) for _ in range(count)]

        self._verify_cohort(records)
        return records

    def generate_cohort(self, count: Optional[int] = None) -> pd.DataFrame:
        """Generate records and return them as a typed table"""
        return to_dataframe(self.generate(count))

    def _verify_cohort(self, records: List[SyntheticIndividual]):
        """Log a short summary of the generated cohort"""
        n = len(records)
        mean_hours = sum(r.daily_hours for r in records) / n
        compare_rate = sum(r.compare_self for r in records) / n
        breakers = [r for r in records if r.took_break]
        break_rate = len(breakers) / n

        logger.info("=== Chain-of-Verification: Cohort ===")
        logger.info(f"  Mean daily hours: {mean_hours:.2f} (configured {self.config.daily_hours.mean})")
        logger.info(f"  Compare-self rate: {compare_rate:.1%}")
        logger.info(f"  Took-break rate: {break_rate:.1%}")
        if breakers:
            better_rate = sum(r.felt_better for r in breakers) / len(breakers)
            logger.info(
                f"  Felt better after break: {better_rate:.1%} "
                f"(configured {self.config.felt_better_probability:.0%})"
            )


# ============================================================
# MODULE-LEVEL API
# ============================================================

def generate(count: int, seed: int, config: Optional[CohortConfig] = None) -> List[SyntheticIndividual]:
    """Deterministically generate ``count`` synthetic individuals"""
    count = _check_integer('count', count, minimum=1)
    seed = _check_integer('seed', seed)
    return CohortGenerator(config, seed=seed).generate(count)


def write_table(records: List[SyntheticIndividual], path: Union[str, Path]) -> Path:
    """
    Write records as UTF-8 CSV with a fixed header.

    Booleans are written as 0/1 and missing felt_better as NA.
    Raises OSError if the file cannot be written.
    """
    path = Path(path)
    df = to_dataframe(records)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        df.to_csv(path, index=False, na_rep=NA_MARKER, encoding='utf-8')
    except OSError as e:
        logger.error(f"Failed to write cohort table to {path}: {e}")
        raise
    logger.info(f"Wrote {len(df):,} rows to {path}")
    return path


def read_table(path: Union[str, Path]) -> pd.DataFrame:
    """Read a table written by ``write_table`` back into a typed frame"""
    df = pd.read_csv(
        path, na_values=[NA_MARKER], keep_default_na=False,
        float_precision='round_trip', encoding='utf-8'
    )
    missing = [c for c in COLUMN_ORDER if c not in df.columns]
    if missing:
        raise ValueError(f"{path}: missing columns {missing}")
    return apply_schema(df[COLUMN_ORDER].copy(), COHORT_SCHEMA, strict=True)


# ============================================================
# COMMAND LINE
# ============================================================

def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        description="Generate a synthetic social-media / mental-health cohort as CSV."
    )
    parser.add_argument('--config', type=Path, default=None,
                        help="YAML preset (default: configs/cohort_config.yaml)")
    parser.add_argument('--count', type=int, default=None, help="Number of individuals")
    parser.add_argument('--seed', type=int, default=None, help="Random seed")
    parser.add_argument('--output', type=Path,
                        default=Path("simulated_social_media_data.csv"),
                        help="Output CSV path")
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")

    try:
        config = load_config(args.config)
        generator = CohortGenerator(config, seed=args.seed)
        records = generator.generate(args.count)
        write_table(records, args.output)
    except InvalidArgumentError as e:
        logger.error(f"Invalid argument: {e}")
        return 1
    except ValueError as e:
        logger.error(f"Invalid configuration: {e}")
        return 1
    except OSError as e:
        logger.error(f"I/O failure: {e}")
        return 1

    return 0


if __name__ == "__main__":
    raise SystemExit(main())
