"""Testing Bayes factors and posterior model probabilities."""

import numpy as np
import pytest

from bridgesampling.analysis.comparison import (
    BayesFactor,
    bayes_factor,
    posterior_model_probabilities,
)
from bridgesampling.analysis.error_measures import error_measures
from bridgesampling.bridge.bridge_sampler import run_bridge_sampler
from bridgesampling.utils.exceptions import InputError, InvalidPriorError


LOG_SQRT_2PI = 0.5 * np.log(2 * np.pi)


def log_normal(draw, data):
    """Unnormalized N(0, scale^2) plus a constant, with data = (scale, constant)."""
    scale, constant = data
    return -0.5 * (draw["mu"] / scale) ** 2 + constant


@pytest.fixture(scope="module")
def two_models():
    """Independent runs on model X (logml L) and model Y (logml L - 5)."""
    mu_x = np.random.default_rng(3).normal(size=20000)
    x = run_bridge_sampler({"mu": mu_x}, log_normal, data=(1.0, 0.0), seed=3, silent=True)
    # log(2) from the wider scale cancels against the constant
    mu_y = np.random.default_rng(4).normal(scale=2.0, size=20000)
    y = run_bridge_sampler(
        {"mu": mu_y}, log_normal, data=(2.0, -5.0 - np.log(2.0)), seed=4, silent=True
    )
    return x, y


class TestBayesFactor:
    """Test Bayes factors between two models."""

    def test_from_log_marginal_likelihoods(self):
        bf = bayes_factor(-10.0, -12.5)
        assert bf.log_bf == pytest.approx(2.5)
        assert bf.bf == pytest.approx(np.exp(2.5))
        assert bf.value == pytest.approx(np.exp(2.5))
        assert bf.re2 == 0.0

    def test_log_flag(self):
        assert bayes_factor(-10.0, -12.5, log=True).value == pytest.approx(2.5)

    def test_reverse_is_reciprocal(self):
        bf = bayes_factor(1.0, 3.0)
        assert bf.bf * bf.reverse().bf == pytest.approx(1.0)
        assert bf.reverse().log_bf == pytest.approx(2.0)

    def test_from_results(self, two_models):
        """Errors of the two independent estimates add."""
        x, y = two_models
        bf = bayes_factor(x, y)
        assert bf.log_bf == pytest.approx(5.0, abs=0.02)
        expected = error_measures(x).re2 + error_measures(y).re2
        assert bf.re2 == pytest.approx(expected)
        assert bf.percentage == pytest.approx(100 * np.sqrt(expected))

    def test_non_finite_input(self):
        with pytest.raises(InputError):
            bayes_factor(np.inf, 0.0)

    def test_dataclass(self):
        bf = BayesFactor(log_bf=0.0)
        assert bf.bf == 1.0
        assert bf.percentage == 0.0


class TestPosteriorModelProbabilities:
    """Test posterior probabilities over a set of models."""

    def test_sum_to_one(self):
        probs = posterior_model_probabilities([-3.0, -1.0, -2.0])
        assert probs.sum() == pytest.approx(1.0)
        assert np.argmax(probs) == 1

    def test_equal_evidence(self):
        np.testing.assert_allclose(posterior_model_probabilities([4.2, 4.2]), [0.5, 0.5])

    def test_large_log_values(self):
        """No overflow for very large log marginal likelihoods."""
        probs = posterior_model_probabilities([1000.0, 999.0])
        np.testing.assert_allclose(probs, [1 / (1 + np.exp(-1)), 1 / (1 + np.exp(1))])

    def test_prior_weighting(self):
        """Equal evidence leaves the prior unchanged."""
        probs = posterior_model_probabilities([0.0, 0.0, 0.0], prior_prob=[0.2, 0.3, 0.5])
        np.testing.assert_allclose(probs, [0.2, 0.3, 0.5])

    def test_zero_prior(self):
        probs = posterior_model_probabilities([0.0, 10.0], prior_prob=[1.0, 0.0])
        np.testing.assert_allclose(probs, [1.0, 0.0])

    def test_two_models(self, two_models):
        """Log marginal likelihoods differing by 5."""
        x, y = two_models
        assert x.log_marginal_likelihood == pytest.approx(LOG_SQRT_2PI, abs=0.01)
        assert y.log_marginal_likelihood == pytest.approx(LOG_SQRT_2PI - 5.0, abs=0.01)
        probs = posterior_model_probabilities(two_models)
        np.testing.assert_allclose(probs, [0.99331, 0.00669], atol=2e-4)

    @pytest.mark.parametrize(
        "prior",
        [[0.5, 0.5, 0.0], [0.7, 0.7], [1.5, -0.5], [0.5, np.nan], [0.4, 0.4]],
        ids=["wrong-length", "sum-above-one", "negative", "nan", "sum-below-one"],
    )
    def test_invalid_prior(self, prior):
        with pytest.raises(InvalidPriorError):
            posterior_model_probabilities([0.0, 1.0], prior_prob=prior)

    def test_no_models(self):
        with pytest.raises(InvalidPriorError):
            posterior_model_probabilities([])
