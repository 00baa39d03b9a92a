"""Tests for the iterative bridge sampling scheme."""

import threading

import numpy as np
import pytest
from scipy import stats

from bridgesampling.bridge.config import ConvergenceCriterion
from bridgesampling.bridge.iterative import IterationStatus, run_iterative_scheme
from bridgesampling.utils.exceptions import IterationCancelledError, NumericalInstabilityError

LOG_SQRT_2PI = 0.5 * np.log(2 * np.pi)


def normal_log_weights(n=20000, seed=0):
    """Log weights of an unnormalized standard normal against a N(0.1, 1.2^2) proposal."""
    rng = np.random.default_rng(seed)
    proposal = stats.norm(0.1, 1.2)
    x_post = rng.normal(size=n)
    x_prop = proposal.rvs(size=n, random_state=rng)
    l1 = -0.5 * x_post**2 - proposal.logpdf(x_post)
    l2 = -0.5 * x_prop**2 - proposal.logpdf(x_prop)
    return l1, l2


class CountingToken:
    """Cancellation token that becomes set after a number of checks."""

    def __init__(self, n_checks):
        self.n_checks = n_checks
        self.calls = 0

    def is_set(self):
        self.calls += 1
        return self.calls > self.n_checks


def test_constant_weights_converge_in_two_iterations():
    """Proposal equal to the normalized posterior: r = 1 after one step."""
    c = 3.2
    result = run_iterative_scheme(np.full(100, c), np.full(100, c))
    assert result.converged
    assert result.status is IterationStatus.CONVERGED
    assert result.n_iter == 2
    assert result.log_marginal_likelihood == pytest.approx(c, abs=1e-12)


def test_normal_normalizing_constant():
    """log of the integral of exp(-x^2 / 2) is log sqrt(2 pi)."""
    l1, l2 = normal_log_weights()
    result = run_iterative_scheme(l1, l2)
    assert result.converged
    assert result.log_marginal_likelihood == pytest.approx(LOG_SQRT_2PI, abs=0.02)


def test_logml_criterion():
    """Monitoring the log marginal likelihood also converges."""
    l1, l2 = normal_log_weights(seed=1)
    result = run_iterative_scheme(l1, l2, criterion=ConvergenceCriterion.LOGML)
    assert result.converged
    assert result.log_marginal_likelihood == pytest.approx(LOG_SQRT_2PI, abs=0.02)


def test_effective_size_changes_weights_not_target():
    """A smaller effective size still recovers the constant."""
    l1, l2 = normal_log_weights(seed=2)
    result = run_iterative_scheme(l1, l2, n_eff=5000.0)
    assert result.log_marginal_likelihood == pytest.approx(LOG_SQRT_2PI, abs=0.03)


def test_maxiter_reached_restarts_once():
    """Non-convergence within maxiter is flagged after a single restart."""
    result = run_iterative_scheme(np.full(50, 3.0), np.full(50, 3.0), maxiter=1)
    assert not result.converged
    assert result.status is IterationStatus.MAX_ITER_REACHED
    assert result.n_iter == 2
    assert np.isfinite(result.log_marginal_likelihood)


def test_maxiter_logml_criterion_does_not_restart():
    """Only the r criterion is retried."""
    result = run_iterative_scheme(
        np.full(50, 3.0), np.full(50, 3.0), maxiter=1, criterion="logml"
    )
    assert not result.converged
    assert result.n_iter == 1


def test_maxiter_logs_warning(caplog):
    """Hitting the iteration cap is reported in the log."""
    with caplog.at_level("WARNING", logger="bridgesampling.bridge.iterative"):
        run_iterative_scheme(np.full(50, 3.0), np.full(50, 3.0), maxiter=1)
    assert "maxiter" in caplog.text


def test_partial_zero_density_at_proposal_draws():
    """Some -inf log weights at the proposal draws are valid."""
    l1, l2 = normal_log_weights(seed=3)
    l2[:10] = -np.inf
    result = run_iterative_scheme(l1, l2)
    assert result.converged
    assert np.isfinite(result.log_marginal_likelihood)


@pytest.mark.parametrize("bad", [np.nan, np.inf, -np.inf])
def test_non_finite_posterior_weights(bad):
    """Every posterior log weight must be finite."""
    l1, l2 = normal_log_weights(n=100)
    l1[5] = bad
    with pytest.raises(NumericalInstabilityError):
        run_iterative_scheme(l1, l2)


@pytest.mark.parametrize("bad", [np.nan, np.inf])
def test_invalid_proposal_weights(bad):
    l1, l2 = normal_log_weights(n=100)
    l2[5] = bad
    with pytest.raises(NumericalInstabilityError):
        run_iterative_scheme(l1, l2)


def test_all_zero_density_at_proposal_draws():
    """The ratio collapses to zero on the first iteration."""
    l1, _ = normal_log_weights(n=100)
    with pytest.raises(NumericalInstabilityError) as excinfo:
        run_iterative_scheme(l1, np.full(100, -np.inf))
    assert excinfo.value.n_iter == 0


def test_empty_inputs():
    with pytest.raises(NumericalInstabilityError):
        run_iterative_scheme([], [0.0, 1.0])


class TestCancellation:
    """Test cooperative cancellation between iterations."""

    def test_cancel_before_start(self):
        """A set event stops the scheme before any iteration."""
        event = threading.Event()
        event.set()
        l1, l2 = normal_log_weights(n=100)
        with pytest.raises(IterationCancelledError) as excinfo:
            run_iterative_scheme(l1, l2, cancel_event=event)
        assert excinfo.value.n_iter == 0

    def test_cancel_between_iterations(self):
        """Iterations already completed are reported."""
        l1, l2 = normal_log_weights(n=1000)
        with pytest.raises(IterationCancelledError) as excinfo:
            run_iterative_scheme(l1, l2, cancel_event=CountingToken(2))
        assert excinfo.value.n_iter == 2

    def test_unset_event_has_no_effect(self):
        l1, l2 = normal_log_weights(n=1000)
        plain = run_iterative_scheme(l1, l2)
        watched = run_iterative_scheme(l1, l2, cancel_event=threading.Event())
        assert watched.log_marginal_likelihood == plain.log_marginal_likelihood
        assert watched.n_iter == plain.n_iter
