"""
Synthetic Cohort - Generator Tests
==================================
Chain-of-Verification test suite.
"""

import pytest
import numpy as np
import pandas as pd
import yaml
import sys
from pathlib import Path

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

import cohort_config
from cohort_config import CohortConfig, AffineTerm, IntegerRange, DEFAULT_CONFIG_PATH
from generator import (
    CohortGenerator, InvalidArgumentError,
    generate, write_table, read_table, probability, main
)
from models import COLUMN_ORDER, SCORE_COLUMNS, from_dataframe, to_dataframe


@pytest.fixture(scope="module")
def large_cohort():
    return to_dataframe(generate(5000, seed=2024))


class TestGenerate:
    """Test record generation"""

    @pytest.mark.parametrize("count", [1, 5, 200])
    def test_exact_count(self, count):
        """Test generate returns exactly count records"""
        assert len(generate(count, seed=1)) == count

    def test_five_rows_seed_42_reproducible(self):
        """Test two independent runs of generate(5, seed=42) match field by field"""
        first = generate(5, seed=42)
        second = generate(5, seed=42)
        assert first == second

    def test_different_seeds_differ(self):
        """Test the seed drives the random source"""
        assert generate(50, seed=1) != generate(50, seed=2)

    def test_generator_reuse_is_deterministic(self):
        """Test repeated calls on one generator repeat the same cohort"""
        gen = CohortGenerator(seed=7)
        assert gen.generate(30) == gen.generate(30)

    def test_default_size_from_config(self):
        """Test count defaults to the configured cohort size"""
        gen = CohortGenerator(CohortConfig(size=25))
        assert len(gen.generate()) == 25

    def test_reference_baseline_preset(self):
        """Test the constant-rate preset drives the same generator"""
        config_path = Path(__file__).parent.parent / "configs" / "reference_baseline.yaml"
        records = CohortGenerator.from_yaml(config_path).generate(2000)
        compare_rate = sum(r.compare_self for r in records) / len(records)
        assert 0.55 < compare_rate < 0.65

    def test_first_draws_follow_documented_order(self):
        """Test daily_hours then compare_self are the first draws from the seeded source"""
        rng = np.random.default_rng(42)
        hours = float(np.clip(round(float(rng.normal(3.5, 1.5)), 1), 0.0, 12.0))
        compare = bool(rng.random() < probability(-1.0 + 0.4 * hours))

        first = generate(1, seed=42)[0]
        assert first.daily_hours == hours
        assert first.compare_self == compare

    def test_age_drawn_last(self):
        """Test changing the age range leaves every other field untouched"""
        base = generate(50, seed=8)
        shifted = generate(50, seed=8, config=CohortConfig(age=IntegerRange(40, 60)))

        strip = lambda r: (r.daily_hours, r.compare_self, r.loneliness, r.depression,
                           r.platforms_used, r.anxiety, r.took_break, r.felt_better)
        assert [strip(r) for r in base] == [strip(r) for r in shifted]
        assert all(40 <= r.age <= 60 for r in shifted)


class TestBoundsAndMissingness:
    """Test value domains hold for every record"""

    def test_bounds(self, large_cohort):
        """Test hours and scores stay inside their bounds"""
        assert large_cohort['daily_hours'].between(0.0, 12.0).all()
        for col in SCORE_COLUMNS:
            assert large_cohort[col].between(1.0, 10.0).all(), col
        assert large_cohort['age'].between(15, 30).all()
        assert large_cohort['platforms_used'].between(1, 8).all()

    def test_felt_better_iff_took_break(self, large_cohort):
        """Test felt_better is defined exactly when a break was taken"""
        defined = large_cohort['felt_better'].notna()
        assert (defined == (large_cohort['took_break'] == 1)).all()

    def test_precision(self, large_cohort):
        """Test continuous fields carry one decimal place"""
        for col in ['daily_hours'] + SCORE_COLUMNS:
            assert np.allclose(large_cohort[col], large_cohort[col].round(1))

    def test_out_of_scale_scores_are_truncated(self):
        """Test scores computed outside the scale land on the nearest bound"""
        cfg = CohortConfig(
            loneliness=AffineTerm(intercept=50.0, noise_sd=1.0),
            depression=AffineTerm(intercept=-50.0, noise_sd=1.0),
        )
        records = CohortGenerator(cfg, seed=3).generate(100)
        assert all(r.loneliness == 10.0 for r in records)
        assert all(r.depression == 1.0 for r in records)

    def test_extreme_logits_clamped(self):
        """Test extreme affine logits still give valid Bernoulli draws"""
        cfg = CohortConfig(
            compare_self=AffineTerm(intercept=1e6),
            took_break=AffineTerm(intercept=-1e6),
        )
        records = CohortGenerator(cfg, seed=5).generate(100)
        assert all(r.compare_self for r in records)
        assert not any(r.took_break for r in records)
        assert all(r.felt_better is None for r in records)


class TestProbability:
    """Test logistic transform"""

    def test_midpoint(self):
        assert probability(0.0) == pytest.approx(0.5)

    def test_extremes(self):
        """Test probabilities stay inside [0, 1] for extreme logits"""
        assert probability(1e6) == 1.0
        assert probability(-1e6) == 0.0
        assert 0.0 <= probability(30.0) <= 1.0


class TestTendencies:
    """Test statistical direction of the causal chain"""

    def test_loneliness_rises_with_usage(self, large_cohort):
        """Test top usage quartile is lonelier than the bottom quartile"""
        q1, q3 = large_cohort['daily_hours'].quantile([0.25, 0.75])
        low = large_cohort.loc[large_cohort['daily_hours'] <= q1, 'loneliness'].mean()
        high = large_cohort.loc[large_cohort['daily_hours'] >= q3, 'loneliness'].mean()
        assert high > low

    def test_comparison_rises_with_usage(self, large_cohort):
        """Test heavier users compare themselves more often"""
        median = large_cohort['daily_hours'].median()
        heavy = large_cohort.loc[large_cohort['daily_hours'] > median, 'compare_self'].mean()
        light = large_cohort.loc[large_cohort['daily_hours'] <= median, 'compare_self'].mean()
        assert heavy > light


class TestInvalidArguments:
    """Test argument validation"""

    @pytest.mark.parametrize("count", [0, -3, 2.5, True, "5", None])
    def test_bad_count(self, count):
        """Test non-positive or non-integer counts are rejected"""
        with pytest.raises(InvalidArgumentError):
            generate(count, seed=1)

    @pytest.mark.parametrize("seed", ["abc", 1.5, False, None])
    def test_bad_seed(self, seed):
        """Test non-integer seeds are rejected, including None"""
        with pytest.raises(InvalidArgumentError):
            generate(5, seed=seed)

    @pytest.mark.parametrize("seed", [-1, -2 ** 70, 2 ** 70])
    def test_any_integer_seed_is_reproducible(self, seed):
        """Test negative and very large seeds are accepted deterministically"""
        assert generate(5, seed=seed) == generate(5, seed=seed)

    def test_negative_seed_differs_from_positive(self):
        assert generate(20, seed=-1) != generate(20, seed=1)

    def test_generator_falls_back_to_config_seed(self):
        """Test the class, unlike generate(), takes its seed from the config"""
        gen = CohortGenerator(CohortConfig(seed=13))
        assert gen.seed == 13
        assert gen.generate(10) == generate(10, seed=13)

    def test_invalid_argument_is_value_error(self):
        assert issubclass(InvalidArgumentError, ValueError)


class TestTableIO:
    """Test CSV serialization"""

    def test_round_trip(self, tmp_path):
        """Test writing and re-reading reproduces the records"""
        records = generate(300, seed=11)
        path = write_table(records, tmp_path / "cohort.csv")

        assert from_dataframe(read_table(path)) == records

    def test_file_format(self, tmp_path):
        """Test header, 0/1 flags and NA marker"""
        records = generate(100, seed=12)
        path = write_table(records, tmp_path / "out" / "cohort.csv")

        lines = path.read_text(encoding='utf-8').splitlines()
        assert lines[0] == ",".join(COLUMN_ORDER)
        assert len(lines) == 101

        raw = pd.read_csv(path, dtype=str, keep_default_na=False)
        assert set(raw['compare_self']) <= {'0', '1'}
        assert set(raw['took_break']) <= {'0', '1'}
        assert set(raw['felt_better']) <= {'0', '1', 'NA'}
        assert ((raw['felt_better'] == 'NA') == (raw['took_break'] == '0')).all()

    def test_write_failure(self, tmp_path):
        """Test an unwritable destination raises OSError"""
        blocker = tmp_path / "blocker"
        blocker.write_text("not a directory")

        with pytest.raises(OSError):
            write_table(generate(3, seed=1), blocker / "cohort.csv")

    def test_read_missing_columns(self, tmp_path):
        """Test reading a foreign CSV fails clearly"""
        path = tmp_path / "other.csv"
        path.write_text("a,b\n1,2\n")

        with pytest.raises(ValueError, match="missing columns"):
            read_table(path)

    def test_read_non_numeric_score(self, tmp_path):
        """Test a score that is not a number fails while reading"""
        path = write_table(generate(5, seed=4), tmp_path / "cohort.csv")
        df = pd.read_csv(path, dtype=str, keep_default_na=False)
        df.loc[0, 'loneliness'] = 'high'
        df.to_csv(path, index=False)

        with pytest.raises(ValueError, match="loneliness"):
            read_table(path)


class TestCommandLine:
    """Test the cohort-generate entry point"""

    def test_success(self, tmp_path):
        out = tmp_path / "cli.csv"
        assert main(['--count', '20', '--seed', '7', '--output', str(out)]) == 0
        assert len(read_table(out)) == 20

    def test_invalid_count_exit_code(self, tmp_path):
        out = tmp_path / "cli.csv"
        assert main(['--count', '0', '--output', str(out)]) == 1
        assert not out.exists()

    def test_missing_config_exit_code(self, tmp_path):
        assert main(['--config', str(tmp_path / "nope.yaml"), '--output', str(tmp_path / "x.csv")]) == 1

    @pytest.mark.parametrize("section, value", [
        ('daily_hours', {'sd': 1.5}),
        ('felt_better', None),
        ('compare_self', None),
        ('loneliness', {'intercept': None}),
        ('anxiety', [1, 2]),
    ])
    def test_malformed_section_exit_code(self, tmp_path, section, value):
        """Test a malformed preset section gives exit code 1, not a traceback"""
        with open(DEFAULT_CONFIG_PATH) as f:
            data = yaml.safe_load(f)
        data[section] = value
        config_path = tmp_path / "bad.yaml"
        config_path.write_text(yaml.safe_dump(data))
        out = tmp_path / "x.csv"

        assert main(['--config', str(config_path), '--output', str(out)]) == 1
        assert not out.exists()

    def test_default_preset_missing_uses_built_in(self, tmp_path, monkeypatch):
        """Test the CLI still runs when no preset ships next to the modules"""
        monkeypatch.setattr(cohort_config, 'DEFAULT_CONFIG_PATH', tmp_path / "absent.yaml")
        out = tmp_path / "cli.csv"

        assert main(['--count', '10', '--seed', '3', '--output', str(out)]) == 0
        assert from_dataframe(read_table(out)) == generate(10, seed=3)


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
