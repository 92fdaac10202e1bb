"""Tests for the AffinityPropagation estimator."""

import threading
import time

import numpy as np
import pytest

from affinity_clustering import (
    AffinityPropagation,
    AffinityPropagationConfig,
    AffinityPropagationResult,
    FitState,
)
from affinity_clustering.metrics import CallableMetric


@pytest.fixture
def texas_and_new_york():
    """Three Texas cities followed by two Manhattan landmarks ([lat, lon])."""
    return np.array(
        [
            [30.2500, 97.7500],  # Austin, TX
            [32.7767, 96.7970],  # Dallas, TX
            [29.7604, 95.3698],  # Houston, TX
            [40.7903, 73.9597],  # Manhattan
            [40.7484, 73.9857],  # Empire State Building
        ]
    )


@pytest.fixture
def block_similarity():
    """
    Similarity matrix of three well-separated blocks (3, 4 and 3 points).

    Points lie on a line; similarity is the negative squared distance, so
    within-block similarities are orders of magnitude above cross-block ones.
    """
    x = np.array([0.0, 1.0, 2.5, 50.0, 51.5, 52.0, 54.0, 100.0, 101.0, 103.0])
    S = -((x[:, None] - x[None, :]) ** 2)
    blocks = [np.arange(0, 3), np.arange(3, 7), np.arange(7, 10)]
    return S, blocks


@pytest.fixture
def blobs():
    """Two tight Gaussian blobs in 2-D."""
    rng = np.random.default_rng(42)
    first = rng.normal(loc=[0.0, 0.0], scale=0.3, size=(8, 2))
    second = rng.normal(loc=[10.0, 10.0], scale=0.3, size=(8, 2))
    return np.vstack([first, second])


def check_result_invariants(result, n_samples, max_iter):
    """Assert the structural guarantees of any fit."""
    assert len(result.labels) == n_samples, "One label per sample"
    assert 1 <= result.n_iter <= max_iter, f"n_iter {result.n_iter} out of range"

    if result.n_clusters == 0:
        assert np.all(result.labels == -1), "Without clusters every label is -1"
        assert len(result.cluster_centers_indices) == 0
        return

    K = result.n_clusters
    assert set(result.labels.tolist()) == set(range(K)), "Labels must be exactly 0..K-1"
    assert len(result.cluster_centers_indices) == K

    first_seen = list(dict.fromkeys(result.labels.tolist()))
    assert first_seen == list(range(K)), "Labels must be numbered by first occurrence"
    for label, center in enumerate(result.cluster_centers_indices):
        assert result.labels[center] == label, f"Exemplar {center} must carry label {label}"


class TestConstruction:
    """Test estimator construction."""

    @pytest.mark.parametrize("damping", [0.3, 0.4999, 1.0, 1.2])
    def test_invalid_damping_fails_early(self, damping):
        """Test invalid damping is rejected before any computation."""
        with pytest.raises(ValueError, match="damping must be between"):
            AffinityPropagation(damping=damping)

    def test_config_with_overrides(self):
        """Test keyword overrides replace config fields and are validated."""
        base = AffinityPropagationConfig(max_iter=50)
        model = AffinityPropagation(base, damping=0.8)

        assert model.config.damping == 0.8
        assert model.config.max_iter == 50
        with pytest.raises(ValueError):
            AffinityPropagation(base, damping=1.0)

    def test_initial_state(self):
        """Test a new model is unfit and exposes no results."""
        model = AffinityPropagation()

        assert model.state is FitState.UNFIT
        assert not model.is_fitted
        with pytest.raises(ValueError, match="Model not fitted"):
            model.labels_

    def test_custom_metric_with_precomputed(self):
        """Test a custom metric cannot be combined with precomputed input."""
        metric = CallableMetric(lambda a, b: 0.0)
        with pytest.raises(ValueError, match="precomputed"):
            AffinityPropagation(metric="precomputed", pairwise_metric=metric)


class TestFitScenarios:
    """End-to-end clustering scenarios."""

    def test_geographic_coordinates(self, texas_and_new_york):
        """Test Texas and New York points split into two clusters."""
        model = AffinityPropagation(metric="haversine", random_seed=0)
        labels = model.fit_predict(texas_and_new_york)

        assert model.n_clusters_ == 2, f"Expected 2 clusters, got {model.n_clusters_}"
        assert labels[0] == labels[1] == labels[2], f"Texas cities split: {labels}"
        assert labels[3] == labels[4], f"Manhattan points split: {labels}"
        assert labels[0] != labels[3], "Texas and New York must differ"
        # Austin is the most central Texas city
        assert model.cluster_centers_indices_[0] == 0
        np.testing.assert_array_equal(model.cluster_centers_[0], texas_and_new_york[0])
        check_result_invariants(model.result_, 5, model.config.max_iter)

    def test_precomputed_blocks(self, block_similarity):
        """Test three similarity blocks give three clusters with central exemplars."""
        S, blocks = block_similarity
        model = AffinityPropagation(metric="precomputed", random_seed=1).fit(S)

        assert model.converged_, "Well-separated blocks should converge"
        assert model.n_clusters_ == 3, f"Expected 3 clusters, got {model.n_clusters_}"

        labels = model.labels_
        for block in blocks:
            assert len(set(labels[block].tolist())) == 1, f"Block {block} split: {labels}"

            within = S[np.ix_(block, block)]
            central = block[np.argmax(within.sum(axis=1))]
            assert model.cluster_centers_indices_[labels[block[0]]] == central, (
                f"Exemplar of block {block} should be {central}"
            )
        check_result_invariants(model.result_, len(S), model.config.max_iter)

    def test_duplicates_without_noise(self):
        """Test disabling noise on duplicated rows still yields a valid result."""
        X = np.array([[0.0, 0.0]] * 4 + [[5.0, 5.0]] * 4)
        model = AffinityPropagation(add_noise=False, max_iter=60).fit(X)

        assert isinstance(model.converged_, bool)
        check_result_invariants(model.result_, 8, 60)

    def test_no_clusters(self):
        """Test a fit where no exemplar emerges labels every point -1."""
        X = np.array([[0.0, 0.0], [1.0, 0.0], [0.5, np.sqrt(3) / 2]])
        model = AffinityPropagation(
            preference=-1e6, max_iter=1, add_noise=False
        ).fit(X)

        assert model.n_clusters_ == 0
        assert not model.converged_
        assert model.n_iter_ == 1
        np.testing.assert_array_equal(model.labels_, [-1, -1, -1])
        assert model.cluster_centers_.shape == (0, 2)
        np.testing.assert_array_equal(model.predict([[0.2, 0.1]]), [-1])

    def test_single_sample(self):
        """Test a single sample forms its own cluster."""
        model = AffinityPropagation().fit([[1.0, 2.0]])

        np.testing.assert_array_equal(model.labels_, [0])
        np.testing.assert_array_equal(model.cluster_centers_indices_, [0])
        assert model.converged_
        assert model.n_iter_ == 1

    def test_seed_reproducibility(self, blobs):
        """Test equal seeds give identical results."""
        first = AffinityPropagation(random_seed=3).fit(blobs)
        second = AffinityPropagation(random_seed=3).fit(blobs)

        np.testing.assert_array_equal(first.labels_, second.labels_)
        assert first.n_iter_ == second.n_iter_

    def test_explicit_generator(self, blobs):
        """Test a supplied generator is used for the noise."""
        first = AffinityPropagation(rng=np.random.default_rng(5)).fit(blobs)
        second = AffinityPropagation(rng=np.random.default_rng(5)).fit(blobs)

        np.testing.assert_array_equal(first.labels_, second.labels_)

    def test_scaled_features(self, blobs):
        """Test scaling keeps well-separated blobs apart."""
        model = AffinityPropagation(scale=True, random_seed=0).fit(blobs)

        labels = model.labels_
        assert len(set(labels[:8].tolist()) & set(labels[8:].tolist())) == 0
        check_result_invariants(model.result_, 16, model.config.max_iter)

    def test_verbose_logging(self, blobs, caplog):
        """Test verbose mode logs progress at INFO."""
        with caplog.at_level("INFO", logger="affinity_clustering"):
            AffinityPropagation(verbose=True, random_seed=0).fit(blobs)

        assert any("identified" in record.getMessage() for record in caplog.records)


class TestInputValidation:
    """Test fit input checks."""

    @pytest.mark.parametrize(
        "X",
        [
            np.zeros((0, 2)),
            np.zeros((3, 0)),
            np.zeros(4),
            np.zeros((2, 2, 2)),
            np.array([[0.0, np.nan], [1.0, 1.0]]),
            np.array([[0.0, np.inf], [1.0, 1.0]]),
        ],
    )
    def test_invalid_input(self, X):
        """Test malformed input fails before any iteration and leaves the model unfit."""
        model = AffinityPropagation()
        with pytest.raises(ValueError):
            model.fit(X)
        assert model.state is FitState.UNFIT

    def test_precomputed_not_square(self):
        """Test precomputed input must be square."""
        with pytest.raises(ValueError, match="square"):
            AffinityPropagation(metric="precomputed").fit(np.zeros((2, 3)))

    def test_refit_after_failure(self, blobs):
        """Test a failed fit can be retried with valid data."""
        model = AffinityPropagation(random_seed=0)
        with pytest.raises(ValueError):
            model.fit(np.array([[np.nan, 0.0]]))

        model.fit(blobs)
        assert model.is_fitted


class TestLifecycle:
    """Test fit-once semantics and locking."""

    def test_fit_is_idempotent(self, blobs):
        """Test a second fit returns the cached result without recomputation."""
        model = AffinityPropagation(random_seed=0)
        assert model.fit(blobs) is model
        first = model.result_

        calls = []
        original = model._fit
        model._fit = lambda X: calls.append(1) or original(X)

        model.fit(blobs[:4])
        assert model.result_ is first, "Second fit must return the cached result"
        assert calls == [], "Second fit must not recompute"
        assert model.state is FitState.FITTED

    def test_concurrent_fit_blocks(self, blobs):
        """Test a concurrent fit waits for the in-flight one instead of racing."""
        model = AffinityPropagation(random_seed=0)
        original = model._fit
        calls = []

        def slow_fit(X):
            calls.append(1)
            time.sleep(0.2)
            return original(X)

        model._fit = slow_fit
        results = []

        def worker():
            model.fit(blobs)
            results.append(model.result_)

        threads = [threading.Thread(target=worker) for _ in range(3)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert len(calls) == 1, f"Expected one fit, got {len(calls)}"
        assert len(results) == 3
        assert all(result is results[0] for result in results)

    def test_result_is_immutable(self, blobs):
        """Test result arrays cannot be written and accessors return copies."""
        model = AffinityPropagation(random_seed=0).fit(blobs)
        result = model.result_

        with pytest.raises(ValueError):
            result.labels[0] = 5
        with pytest.raises(AttributeError):
            result.n_clusters = 10

        labels = model.labels_
        labels[0] = 99
        assert model.labels_[0] != 99, "labels_ must return a copy"


class TestPredict:
    """Test assignment of new points."""

    def test_predict_new_points(self, blobs):
        """Test new points join the nearest blob."""
        model = AffinityPropagation(random_seed=0).fit(blobs)
        labels = model.labels_

        predicted = model.predict([[0.1, -0.1], [9.8, 10.2]])
        assert predicted[0] == labels[0]
        assert predicted[1] == labels[8]

    def test_predict_training_points(self, blobs):
        """Test training points are predicted with their fitted labels."""
        model = AffinityPropagation(random_seed=0).fit(blobs)
        np.testing.assert_array_equal(model.predict(blobs), model.labels_)

    def test_predict_unfitted(self):
        """Test predicting before fitting raises."""
        with pytest.raises(ValueError, match="Model not fitted"):
            AffinityPropagation().predict([[0.0, 0.0]])

    def test_predict_feature_mismatch(self, blobs):
        """Test the feature count must match the training data."""
        model = AffinityPropagation(random_seed=0).fit(blobs)
        with pytest.raises(ValueError, match="Expected 2 features"):
            model.predict([[0.0, 0.0, 0.0]])

    def test_predict_precomputed(self, block_similarity):
        """Test predict is unavailable for precomputed similarities."""
        S, _ = block_similarity
        model = AffinityPropagation(metric="precomputed", random_seed=0).fit(S)
        with pytest.raises(ValueError, match="precomputed"):
            model.predict(S[:2])


class TestResult:
    """Test AffinityPropagationResult."""

    def test_dict_round_trip(self):
        """Test to_dict/from_dict preserve every field."""
        result = AffinityPropagationResult(
            labels=[0, 1, 0],
            cluster_centers_indices=[2, 1],
            n_clusters=2,
            converged=True,
            n_iter=17,
            preference=-3.5,
        )
        restored = AffinityPropagationResult.from_dict(result.to_dict())

        np.testing.assert_array_equal(restored.labels, result.labels)
        np.testing.assert_array_equal(
            restored.cluster_centers_indices, result.cluster_centers_indices
        )
        assert restored.n_clusters == 2
        assert restored.converged is True
        assert restored.n_iter == 17
        assert restored.preference == -3.5

    def test_inconsistent_cluster_count(self):
        """Test the exemplar count must match n_clusters."""
        with pytest.raises(ValueError, match="exemplar indices"):
            AffinityPropagationResult(
                labels=[0, 0], cluster_centers_indices=[0], n_clusters=2,
                converged=True, n_iter=1,
            )
