"""
Synthetic Cohort - Configuration
================================

Typed parameters for the causal simulation model. One ``CohortConfig``
drives the single generator; the presets under ``configs/`` only differ in
their numbers.

Model
-----
Every derived field is an affine term over fields drawn earlier:

    value = intercept + sum(coefficient[f] * record[f]) + Normal(0, noise_sd)

Scores (loneliness, depression, anxiety) are rounded and clamped to the
1-10 scale. Logit terms (compare_self, took_break) pass through the logistic
transform and become Bernoulli probabilities.
"""

from dataclasses import dataclass, field
from typing import Optional, Dict, Tuple
from pathlib import Path
import logging

import yaml


logger = logging.getLogger(__name__)


# Fixed order in which one record consumes the random source
DRAW_ORDER: Tuple[str, ...] = (
    'daily_hours',
    'compare_self',
    'loneliness',
    'depression',
    'platforms_used',
    'anxiety',
    'took_break',
    'felt_better',
    'age',
)

REQUIRED_KEYS = [
    'cohort', 'daily_hours', 'compare_self', 'loneliness',
    'depression', 'anxiety', 'took_break', 'felt_better',
]

DEFAULT_CONFIG_PATH = Path(__file__).parent.parent / "configs" / "cohort_config.yaml"


# =============================================================================
# MODEL PARTS
# =============================================================================

@dataclass
class IntegerRange:
    """Inclusive integer range sampled uniformly."""
    low: int
    high: int


@dataclass
class NormalSpec:
    """Normal draw clamped to [lower, upper] after rounding."""
    mean: float
    sd: float
    lower: float
    upper: float


@dataclass
class AffineTerm:
    """
    Affine function of earlier fields plus independent normal noise.

    Used both for bounded scores and for logits feeding a Bernoulli draw
    (logits carry no noise).
    """
    intercept: float = 0.0
    coefficients: Dict[str, float] = field(default_factory=dict)
    noise_sd: float = 0.0

    def evaluate(self, values: Dict[str, float]) -> float:
        return self.intercept + sum(
            weight * float(values[name]) for name, weight in self.coefficients.items()
        )


@dataclass
class ValidationThresholds:
    """Thresholds used by the cohort validator."""
    min_rows_for_tendency: int = 40
    quartile_gap_floor: float = 0.0


@dataclass
class CohortConfig:
    """
    Complete parameter set for one synthetic cohort.

    Defaults reproduce the causal-chain model: heavier use raises the odds
    of social comparison and loneliness, comparison raises depression and
    anxiety, and distress raises the odds of taking a break.
    """
    size: int = 200
    seed: int = 42
    precision: int = 1

    age: IntegerRange = field(default_factory=lambda: IntegerRange(15, 30))
    daily_hours: NormalSpec = field(
        default_factory=lambda: NormalSpec(mean=3.5, sd=1.5, lower=0.0, upper=12.0)
    )
    platforms_used: IntegerRange = field(default_factory=lambda: IntegerRange(1, 8))

    compare_self: AffineTerm = field(
        default_factory=lambda: AffineTerm(intercept=-1.0, coefficients={'daily_hours': 0.4})
    )
    loneliness: AffineTerm = field(
        default_factory=lambda: AffineTerm(
            intercept=2.67, coefficients={'daily_hours': 0.67}, noise_sd=2.0
        )
    )
    depression: AffineTerm = field(
        default_factory=lambda: AffineTerm(
            intercept=4.9, coefficients={'compare_self': 1.0}, noise_sd=1.8
        )
    )
    anxiety: AffineTerm = field(
        default_factory=lambda: AffineTerm(
            intercept=3.9,
            coefficients={'compare_self': 0.5, 'platforms_used': 0.175},
            noise_sd=1.5,
        )
    )
    took_break: AffineTerm = field(
        default_factory=lambda: AffineTerm(
            intercept=-2.0, coefficients={'loneliness': 0.15, 'depression': 0.15}
        )
    )
    felt_better_probability: float = 0.7

    validation: ValidationThresholds = field(default_factory=ValidationThresholds)

    def __post_init__(self):
        self.validate()

    @property
    def affine_terms(self) -> Dict[str, AffineTerm]:
        return {
            'compare_self': self.compare_self,
            'loneliness': self.loneliness,
            'depression': self.depression,
            'anxiety': self.anxiety,
            'took_break': self.took_break,
        }

    def validate(self):
        """Raise ValueError if the parameters cannot drive a simulation"""
        problems = []

        if self.precision < 0:
            problems.append(f"precision must be >= 0, got {self.precision}")
        for name, rng_spec in (('age', self.age), ('platforms_used', self.platforms_used)):
            if rng_spec.low > rng_spec.high:
                problems.append(f"{name}: low {rng_spec.low} > high {rng_spec.high}")

        hours = self.daily_hours
        if hours.sd < 0:
            problems.append(f"daily_hours: sd must be >= 0, got {hours.sd}")
        if hours.lower > hours.upper:
            problems.append(f"daily_hours: lower {hours.lower} > upper {hours.upper}")
        if hours.lower < 0:
            problems.append(f"daily_hours: lower bound {hours.lower} must be >= 0")

        for name, term in self.affine_terms.items():
            if term.noise_sd < 0:
                problems.append(f"{name}: noise_sd must be >= 0, got {term.noise_sd}")
            earlier = DRAW_ORDER[:DRAW_ORDER.index(name)]
            late = [f for f in term.coefficients if f not in earlier]
            if late:
                problems.append(
                    f"{name}: coefficients reference fields not drawn before it: {late}"
                )

        if not 0.0 <= self.felt_better_probability <= 1.0:
            problems.append(
                f"felt_better: probability {self.felt_better_probability} outside [0, 1]"
            )

        if problems:
            for p in problems:
                logger.error(f"Invalid cohort config: {p}")
            raise ValueError("Invalid cohort config: " + "; ".join(problems))


# =============================================================================
# YAML LOADING
# =============================================================================

def _section(data: dict, key: str, required_keys=()) -> dict:
    """Return a YAML section as a mapping, checking its required sub-keys"""
    section = data.get(key)
    if section is None:
        if key in REQUIRED_KEYS:
            raise ValueError(f"Invalid config section '{key}': must not be empty")
        return {}
    if not isinstance(section, dict):
        raise ValueError(
            f"Invalid config section '{key}': expected a mapping, got {type(section).__name__}"
        )
    missing = [k for k in required_keys if k not in section]
    if missing:
        raise ValueError(f"Invalid config section '{key}': missing keys {missing}")
    return section


def _affine_from_dict(d: dict) -> AffineTerm:
    coefficients = d.get('coefficients') or {}
    if not isinstance(coefficients, dict):
        raise ValueError(f"coefficients must be a mapping, got {type(coefficients).__name__}")
    return AffineTerm(
        intercept=float(d.get('intercept', 0.0)),
        coefficients={k: float(v) for k, v in coefficients.items()},
        noise_sd=float(d.get('noise_sd', 0.0)),
    )


def config_from_dict(data: dict) -> CohortConfig:
    """Build a CohortConfig from the nested YAML structure"""
    missing = [k for k in REQUIRED_KEYS if k not in data]
    if missing:
        raise ValueError(f"Missing config keys: {missing}")

    defaults = CohortConfig()
    cohort = _section(data, 'cohort')
    hours = _section(data, 'daily_hours', ('mean', 'sd'))
    felt_better = _section(data, 'felt_better', ('probability',))
    age = _section(data, 'age')
    platforms = _section(data, 'platforms_used')
    validation = _section(data, 'validation')
    terms = {
        name: _section(data, name)
        for name in ('compare_self', 'loneliness', 'depression', 'anxiety', 'took_break')
    }

    try:
        return CohortConfig(
            size=int(cohort.get('size', defaults.size)),
            seed=int(cohort.get('seed', defaults.seed)),
            precision=int(cohort.get('precision', defaults.precision)),
            age=IntegerRange(
                int(age.get('min', defaults.age.low)),
                int(age.get('max', defaults.age.high)),
            ),
            daily_hours=NormalSpec(
                mean=float(hours['mean']),
                sd=float(hours['sd']),
                lower=float(hours.get('min', defaults.daily_hours.lower)),
                upper=float(hours.get('max', defaults.daily_hours.upper)),
            ),
            platforms_used=IntegerRange(
                int(platforms.get('min', defaults.platforms_used.low)),
                int(platforms.get('max', defaults.platforms_used.high)),
            ),
            compare_self=_affine_from_dict(terms['compare_self']),
            loneliness=_affine_from_dict(terms['loneliness']),
            depression=_affine_from_dict(terms['depression']),
            anxiety=_affine_from_dict(terms['anxiety']),
            took_break=_affine_from_dict(terms['took_break']),
            felt_better_probability=float(felt_better['probability']),
            validation=ValidationThresholds(
                min_rows_for_tendency=int(validation.get(
                    'min_rows_for_tendency', defaults.validation.min_rows_for_tendency
                )),
                quartile_gap_floor=float(validation.get(
                    'quartile_gap_floor', defaults.validation.quartile_gap_floor
                )),
            ),
        )
    except TypeError as e:
        # e.g. a null where a number is expected
        raise ValueError(f"Invalid config value: {e}") from e


def load_config(config_path: Optional[Path] = None) -> CohortConfig:
    """
    Load and validate a cohort configuration.

    Args:
        config_path: Path to a YAML preset. If None, uses configs/cohort_config.yaml
            when it ships alongside the modules, else the built-in defaults.
    """
    if config_path is None:
        if not DEFAULT_CONFIG_PATH.exists():
            logger.warning(f"No preset at {DEFAULT_CONFIG_PATH}; using built-in defaults")
            return CohortConfig()
        config_path = DEFAULT_CONFIG_PATH

    with open(config_path, 'r', encoding='utf-8') as f:
        try:
            data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ValueError(f"Config {config_path} is not valid YAML: {e}") from e

    if not isinstance(data, dict):
        raise ValueError(f"Config {config_path} must be a YAML mapping")

    config = config_from_dict(data)
    logger.info(f"Loaded cohort config from {config_path} (size={config.size}, seed={config.seed})")
    return config
