"""
KMeans 테스트
"""

import numpy as np
import pytest

from ml_engine import KMeans, NotFittedError


TWO_CLUSTERS = np.array([
    [0.0, 0.0], [0.0, 1.0], [1.0, 0.0], [1.0, 1.0],
    [10.0, 10.0], [10.0, 11.0], [11.0, 10.0], [11.0, 11.0],
])


def test_unfitted_model():
    km = KMeans(k=2)

    assert km.get_inertia([[1, 2]]) == float('inf')
    with pytest.raises(NotFittedError, match="KMeans"):
        km.predict([[1, 2]])


def test_two_clusters_converge():
    km = KMeans(k=2, max_iterations=100, random_state=0).fit(TWO_CLUSTERS)
    labels = km.labels_

    assert len(set(labels[:4])) == 1
    assert len(set(labels[4:])) == 1
    assert labels[0] != labels[4]
    assert km.get_inertia(TWO_CLUSTERS) == pytest.approx(4.0)
    assert km.inertia_ == pytest.approx(4.0)
    assert km.n_iter_ <= 100


def test_predict_assigns_nearest_centroid():
    km = KMeans(k=2, random_state=0).fit(TWO_CLUSTERS)

    near_origin, near_far = km.predict([[0.5, 0.5], [10.5, 10.5]])
    assert near_origin == km.labels_[0]
    assert near_far == km.labels_[4]


def test_fit_predict_matches_labels():
    km = KMeans(k=2, random_state=5)
    assert np.array_equal(km.fit_predict(TWO_CLUSTERS), km.labels_)


def test_seeded_fit_is_reproducible():
    rng = np.random.default_rng(9)
    X = rng.normal(size=(60, 3))

    first = KMeans(k=4, random_state=21).fit(X)
    second = KMeans(k=4, random_state=21).fit(X)

    assert np.array_equal(first.centroids_, second.centroids_)
    assert np.array_equal(first.labels_, second.labels_)


def test_invalid_k():
    with pytest.raises(ValueError):
        KMeans(k=0).fit(TWO_CLUSTERS)
    with pytest.raises(ValueError):
        KMeans(k=9).fit(TWO_CLUSTERS)


def test_inertia_requires_training_rows():
    km = KMeans(k=2, random_state=0).fit(TWO_CLUSTERS)
    with pytest.raises(ValueError):
        km.get_inertia(TWO_CLUSTERS[:3])


def test_identical_points_seed_without_division_by_zero():
    X = np.ones((5, 2))
    km = KMeans(k=2, random_state=0).fit(X)

    assert km.centroids_.shape == (2, 2)
    assert km.get_inertia(X) == 0.0


def test_empty_cluster_is_reseeded_from_data():
    km = KMeans(k=2)
    labels = np.zeros(len(TWO_CLUSTERS), dtype=int)

    centroids = km._update_centroids(TWO_CLUSTERS, labels, np.random.default_rng(0))

    assert np.allclose(centroids[0], TWO_CLUSTERS.mean(axis=0))
    assert any(np.array_equal(centroids[1], point) for point in TWO_CLUSTERS)


def test_kmeans_plus_plus_picks_distinct_far_points():
    X = np.array([[0.0, 0.0], [0.0, 0.0], [100.0, 100.0]])
    centroids = KMeans(k=2)._initialize_centroids(X, np.random.default_rng(4))

    picked = {tuple(c) for c in centroids}
    assert picked == {(0.0, 0.0), (100.0, 100.0)}


def test_stops_early_when_centroids_settle():
    km = KMeans(k=2, max_iterations=100, random_state=0).fit(TWO_CLUSTERS)
    assert km.n_iter_ < 100


def test_large_tolerance_stops_after_first_iteration():
    km = KMeans(k=2, max_iterations=100, tolerance=1e9, random_state=0).fit(TWO_CLUSTERS)
    assert km.n_iter_ == 1


def test_zero_iterations_assigns_initial_labels():
    km = KMeans(k=2, max_iterations=0, random_state=0)
    labels = km.fit_predict(TWO_CLUSTERS)

    assert km.n_iter_ == 0
    assert labels is not None
    assert labels.shape == (8,)
    assert np.isfinite(km.inertia_)


def test_single_iteration_limit():
    km = KMeans(k=2, max_iterations=1, random_state=0).fit(TWO_CLUSTERS)
    assert km.n_iter_ == 1
    assert km.labels_.shape == (8,)


def test_dict_round_trip_predicts_identically():
    km = KMeans(k=2, random_state=0).fit(TWO_CLUSTERS)
    restored = KMeans.from_dict(km.to_dict())

    assert np.array_equal(restored.predict(TWO_CLUSTERS), km.predict(TWO_CLUSTERS))
    assert restored.get_inertia(TWO_CLUSTERS) == pytest.approx(km.inertia_)
