"""Testing the approximate relative mean-squared error of bridge sampling estimates."""

import numpy as np
import pytest
from scipy.signal import lfilter

from bridgesampling.analysis.error_measures import ErrorEstimate, EssMethod, error_measures
from bridgesampling.bridge.bridge_sampler import BridgeResult, WeightSample, run_bridge_sampler
from bridgesampling.bridge.config import BridgeMethod
from bridgesampling.bridge.iterative import run_iterative_scheme
from bridgesampling.bridge.proposal import Proposal
from bridgesampling.utils.exceptions import InputError


def log_gamma(draw, data):
    lam = draw["lam"]
    return 2.0 * np.log(lam) - lam


def gamma_run(n, seed):
    """Bridge sampling estimate of log Gamma(3) from `n` exact posterior draws."""
    lam = np.random.default_rng(seed).gamma(3.0, 1.0, size=n)
    return run_bridge_sampler({"lam": lam}, log_gamma, lower={"lam": 0.0}, seed=seed, silent=True)


def result_from_weights(l1, l2, n_chains=1):
    """Wrap raw log weights in a BridgeResult with its iterative estimate."""
    iteration = run_iterative_scheme(l1, l2)
    return BridgeResult(
        log_marginal_likelihood=iteration.log_marginal_likelihood,
        n_iter=iteration.n_iter,
        converged=iteration.converged,
        status=iteration.status,
        method=BridgeMethod.NORMAL,
        weights=WeightSample(
            log_weights_posterior=np.asarray(l1, dtype=float),
            log_weights_proposal=np.asarray(l2, dtype=float),
            n_eff=float(len(l1)),
            n_chains=n_chains,
        ),
        proposal=Proposal(mean=np.zeros(1), covariance=np.eye(1)),
    )


def test_error_estimate_properties():
    estimate = ErrorEstimate(re2=0.0004)
    assert estimate.cv == pytest.approx(0.02)
    assert estimate.percentage == pytest.approx(2.0)


def test_constant_weights_have_no_error():
    """A proposal equal to the normalized posterior gives exact estimates."""
    result = result_from_weights(np.full(200, 1.3), np.full(200, 1.3))
    assert error_measures(result).re2 == pytest.approx(0.0, abs=1e-20)


def test_error_shrinks_with_more_draws():
    """The percentage error falls as the number of draws grows."""
    small = np.mean([error_measures(gamma_run(1000, seed)).percentage for seed in range(3)])
    large = np.mean([error_measures(gamma_run(16000, seed)).percentage for seed in range(3)])
    assert large < small
    # roughly a factor of four for 16 times the draws
    assert 2.0 < small / large < 8.0


def test_error_matches_spread_of_estimates():
    """The estimated coefficient of variation tracks the spread over repetitions."""
    results = [gamma_run(2000, seed) for seed in range(100, 120)]
    logml = np.array([r.log_marginal_likelihood for r in results])
    cv = np.mean([error_measures(r).cv for r in results])
    ratio = np.std(logml, ddof=1) / cv
    assert 1 / 3 <= ratio <= 3


def test_batch_means_agrees_with_autocorr():
    """Independent draws give similar corrections under both estimators."""
    result = gamma_run(20000, 5)
    autocorr = error_measures(result, ess_method=EssMethod.AUTOCORR)
    batch = error_measures(result, ess_method="batch_means")
    assert 0.5 < batch.re2 / autocorr.re2 < 2.0


def test_autocorrelated_posterior_draws_inflate_error():
    """Ordering the posterior weights as a correlated chain raises the error."""
    rng = np.random.default_rng(12)
    l1 = 0.3 * lfilter([1.0], [1.0, -0.9], rng.normal(size=10000)) * np.sqrt(1 - 0.81)
    l2 = 0.3 * rng.normal(size=10000)
    correlated = error_measures(result_from_weights(l1, l2))
    shuffled = error_measures(result_from_weights(rng.permutation(l1), l2))
    assert correlated.re2 > 2 * shuffled.re2


def test_anti_correlated_posterior_draws_reduce_error():
    """Anti-correlated posterior weights shrink the error but keep it positive."""
    rng = np.random.default_rng(14)
    l1 = 0.3 * lfilter([1.0], [1.0, 0.6], rng.normal(size=10000)) * np.sqrt(1 - 0.36)
    # constant proposal weights leave only the posterior-draw term
    l2 = np.zeros(10000)
    anti = error_measures(result_from_weights(l1, l2))
    shuffled = error_measures(result_from_weights(rng.permutation(l1), l2))
    assert anti.re2 > 0
    # autocorrelation time (1 - 0.6) / (1 + 0.6) = 0.25
    assert 0.1 < anti.re2 / shuffled.re2 < 0.5


def test_chains_are_treated_separately():
    """Correlation is measured within chains, not across their boundaries."""
    rng = np.random.default_rng(13)
    l1 = 0.3 * rng.normal(size=4000)
    l2 = 0.3 * rng.normal(size=4000)
    one = error_measures(result_from_weights(l1, l2, n_chains=1))
    four = error_measures(result_from_weights(l1, l2, n_chains=4))
    assert four.re2 == pytest.approx(one.re2, rel=0.5)


def test_unknown_ess_method():
    result = result_from_weights(np.zeros(10), np.zeros(10))
    with pytest.raises(InputError):
        error_measures(result, ess_method="spectral")
