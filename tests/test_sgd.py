"""
Tests for the confidence-weighted SGD loop and the predictor.
"""

import warnings

import numpy as np
import pytest
from amf.models import ConfidenceTracker
from amf.objectives import sigmoid, grad_sigmoid
from amf.optimization.sgd import sgd_update, predict_matrix, run_amf


@pytest.fixture
def small_problem():
    """Sparse 6 × 5 matrix with values in [0.2, 0.9] and random factors."""
    rng = np.random.default_rng(42)
    M = rng.uniform(0.2, 0.9, size=(6, 5))
    M[rng.random((6, 5)) < 0.4] = 0.0
    U = rng.random((6, 3))
    S = rng.random((5, 3))
    return M, U, S


class TestSGDUpdate:
    """Test a single confidence-weighted step."""

    def test_hand_computed_step(self):
        """Both gradients use the factors from before the step."""
        U = np.array([[0.4, -0.2]])
        S = np.array([[0.3, 0.7]])
        u0, s0 = U[0].copy(), S[0].copy()
        tracker = ConfidenceTracker(1, 1, beta=0.5)
        lambda_reg, eta, r = 0.01, 0.1, 0.6

        uv = u0 @ s0
        p = sigmoid(uv)
        coef = (p - r) * grad_sigmoid(uv) / r ** 2
        # confidences are both 1.0, so w_i = w_j = 0.5
        expected_u = u0 - eta * (0.5 * coef * s0 + lambda_reg * u0)
        expected_s = s0 - eta * (0.5 * coef * u0 + lambda_reg * s0)

        wi, wj = sgd_update(U, S, 0, 0, r, tracker, lambda_reg, eta)

        assert wi == pytest.approx(0.5)
        assert wj == pytest.approx(0.5)
        np.testing.assert_allclose(U[0], expected_u, rtol=1e-12)
        np.testing.assert_allclose(S[0], expected_s, rtol=1e-12)

    def test_moves_prediction_toward_target(self):
        """A step reduces |σ(U·S) - r| for both over- and under-prediction."""
        for r in (0.2, 0.95):
            U = np.full((1, 2), 0.5)
            S = np.full((1, 2), 0.5)
            tracker = ConfidenceTracker(1, 1, beta=0.3)
            before = abs(sigmoid(U[0] @ S[0]) - r)

            sgd_update(U, S, 0, 0, r, tracker, lambda_reg=0.0, eta=0.5)

            assert abs(sigmoid(U[0] @ S[0]) - r) < before

    def test_other_rows_untouched(self, small_problem):
        """Only U[i] and S[j] change."""
        _, U, S = small_problem
        U_before, S_before = U.copy(), S.copy()
        tracker = ConfidenceTracker(6, 5, beta=0.3)

        sgd_update(U, S, 2, 3, 0.5, tracker, lambda_reg=0.01, eta=0.1)

        rows = [k for k in range(6) if k != 2]
        cols = [k for k in range(5) if k != 3]
        np.testing.assert_array_equal(U[rows], U_before[rows])
        np.testing.assert_array_equal(S[cols], S_before[cols])
        assert not np.array_equal(U[2], U_before[2])


class TestPredictMatrix:
    """Test observed-only and full prediction."""

    def test_full_prediction(self, small_problem):
        """Every cell equals σ(U[i]·S[j])."""
        _, U, S = small_problem
        P = predict_matrix(U, S)

        for i in range(U.shape[0]):
            for j in range(S.shape[0]):
                assert P[i, j] == pytest.approx(sigmoid(U[i] @ S[j]))

    def test_observed_only_leaves_missing_cells(self, small_problem):
        """Observed-only mode does not touch missing cells of `out`."""
        M, U, S = small_problem
        out = np.full(M.shape, -1.0)

        predict_matrix(U, S, M, out=out)

        observed = M != 0
        assert np.all(out[~observed] == -1.0)
        np.testing.assert_allclose(out[observed], predict_matrix(U, S)[observed])

    def test_idempotent(self, small_problem):
        """Two calls with unchanged factors give identical matrices."""
        _, U, S = small_problem
        np.testing.assert_array_equal(predict_matrix(U, S), predict_matrix(U, S))

    def test_writes_into_out(self, small_problem):
        """The provided buffer is filled and returned."""
        _, U, S = small_problem
        out = np.zeros((6, 5))
        result = predict_matrix(U, S, out=out)
        assert result is out


class TestRunAMF:
    """Test the full epoch loop."""

    def test_zero_epochs(self, small_problem):
        """max_iter = 0 keeps the factors and predicts σ(U·Sᵀ) once."""
        M, U, S = small_problem
        U0, S0 = U.copy(), S.copy()
        pred = np.zeros(M.shape)

        run_amf(M, U, S, pred, lambda_reg=0.01, max_iter=0, eta=0.1, beta=0.3,
                rng=np.random.default_rng(0))

        np.testing.assert_array_equal(U, U0)
        np.testing.assert_array_equal(S, S0)
        np.testing.assert_allclose(pred, sigmoid(U0 @ S0.T))

    def test_deterministic_with_seed(self, small_problem):
        """Same seed and initial factors give bit-identical outputs."""
        M, U, S = small_problem
        results = []
        for _ in range(2):
            U_run, S_run = U.copy(), S.copy()
            pred = np.zeros(M.shape)
            run_amf(M, U_run, S_run, pred, lambda_reg=0.01, max_iter=5, eta=0.1,
                    beta=0.3, rng=np.random.default_rng(123))
            results.append((U_run, S_run, pred))

        for a, b in zip(results[0], results[1]):
            np.testing.assert_array_equal(a, b)

    def test_shuffle_order_matters(self, small_problem):
        """Different seeds visit samples in different orders."""
        M, U, S = small_problem
        outputs = []
        for seed in (1, 2):
            U_run = U.copy()
            run_amf(M, U_run, S.copy(), np.zeros(M.shape), lambda_reg=0.01,
                    max_iter=3, eta=0.1, beta=0.3, rng=np.random.default_rng(seed))
            outputs.append(U_run)

        assert not np.array_equal(outputs[0], outputs[1])

    def test_observation_matrix_unchanged(self, small_problem):
        """The observation matrix is read-only."""
        M, U, S = small_problem
        M_before = M.copy()
        run_amf(M, U, S, np.zeros(M.shape), lambda_reg=0.01, max_iter=2,
                eta=0.1, beta=0.3, rng=np.random.default_rng(0))
        np.testing.assert_array_equal(M, M_before)

    def test_confidence_persists_across_epochs(self, small_problem):
        """Returned tracker reflects every epoch, not just the last one."""
        M, U, S = small_problem
        one = run_amf(M, U.copy(), S.copy(), np.zeros(M.shape), lambda_reg=0.01,
                      max_iter=1, eta=0.1, beta=0.3, rng=np.random.default_rng(0))
        two = run_amf(M, U.copy(), S.copy(), np.zeros(M.shape), lambda_reg=0.01,
                      max_iter=2, eta=0.1, beta=0.3, rng=np.random.default_rng(0))

        assert not np.array_equal(one.user_confidence, two.user_confidence)

    def test_diagnostics_printed_and_recorded(self, small_problem, capsys):
        """Verbose mode prints timestamped loss lines and fills history."""
        M, U, S = small_problem
        n_samples = int(np.sum(M != 0))
        history = {'checkpoint': [], 'epoch': [], 'loss': []}

        run_amf(M, U, S, np.zeros(M.shape), lambda_reg=0.01, max_iter=3, eta=0.1,
                beta=0.3, rng=np.random.default_rng(0), verbose=True,
                log_interval=n_samples, history=history)

        assert history['checkpoint'] == [0, n_samples, 2 * n_samples]
        assert history['epoch'] == [0, 1, 2]
        out = capsys.readouterr().out
        assert out.count("lossValue = ") == 3
        assert "iter = 2" in out

    def test_no_diagnostics_when_quiet(self, small_problem, capsys):
        """Without verbose nothing is printed."""
        M, U, S = small_problem
        run_amf(M, U, S, np.zeros(M.shape), lambda_reg=0.01, max_iter=2, eta=0.1,
                beta=0.3, rng=np.random.default_rng(0))
        assert capsys.readouterr().out == ""


class TestNumericalDegeneracy:
    """Test warnings for unstable inputs."""

    def test_small_values_warn(self):
        """Observed values near zero trigger a warning before training."""
        M = np.array([[1e-5, 0.5], [0.4, 0.6]])
        with pytest.warns(RuntimeWarning, match="below"):
            run_amf(M, np.ones((2, 1)), np.ones((2, 1)), np.zeros((2, 2)),
                    lambda_reg=0.01, max_iter=1, eta=0.01, beta=0.3,
                    rng=np.random.default_rng(0))

    def test_nan_propagates_and_warns(self):
        """NaN factors spread silently and are reported after training."""
        M = np.array([[0.5, 0.6], [0.4, 0.0]])
        U = np.array([[np.nan], [1.0]])
        S = np.ones((2, 1))
        pred = np.zeros((2, 2))

        with pytest.warns(RuntimeWarning, match="non-finite"):
            run_amf(M, U, S, pred, lambda_reg=0.01, max_iter=2, eta=0.1, beta=0.3,
                    rng=np.random.default_rng(0))

        assert np.isnan(S).any()
        assert np.isnan(pred).any()

    def test_check_finite_disabled(self):
        """check_finite=False keeps NaN output but emits no warning."""
        M = np.array([[0.5, 0.6], [0.4, 0.0]])
        U = np.array([[np.nan], [1.0]])
        S = np.ones((2, 1))
        pred = np.zeros((2, 2))

        with warnings.catch_warnings():
            warnings.simplefilter("error")
            run_amf(M, U, S, pred, lambda_reg=0.01, max_iter=2, eta=0.1, beta=0.3,
                    rng=np.random.default_rng(0), check_finite=False)

        assert np.isnan(pred).any()

    def test_empty_matrix_warns(self):
        """A matrix with no observed entries warns and keeps the factors."""
        U = np.ones((2, 1))
        with pytest.warns(RuntimeWarning, match="No observed entries"):
            run_amf(np.zeros((2, 2)), U, np.ones((2, 1)), np.zeros((2, 2)),
                    lambda_reg=0.01, max_iter=3, eta=0.1, beta=0.3)
        np.testing.assert_array_equal(U, np.ones((2, 1)))
