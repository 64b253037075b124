"""
Statistics Utilities 테스트
"""

import numpy as np
import pytest

from ml_engine import (
    LinearRegression,
    calculate_correlation,
    calculate_mae,
    calculate_r2,
    calculate_rmse,
    check_random_state,
    cross_val_score,
    k_fold_split,
    normalize_array,
    standardize_array,
    train_test_split,
)


def test_normalize_array_range():
    result = normalize_array([1, 2, 3, 4, 5])
    assert result[0] == pytest.approx(0.0)
    assert result[2] == pytest.approx(0.5)
    assert result[4] == pytest.approx(1.0)


def test_normalize_array_negative_values():
    assert np.allclose(normalize_array([-10, 0, 10]), [0.0, 0.5, 1.0])


def test_normalize_array_constant_returns_half():
    assert np.all(normalize_array([3, 3, 3]) == 0.5)


def test_normalize_array_empty():
    assert normalize_array([]).size == 0


def test_standardize_array_moments():
    result = standardize_array([2, 4, 4, 4, 5, 5, 7, 9])
    assert np.mean(result) == pytest.approx(0.0, abs=1e-12)
    assert np.std(result) == pytest.approx(1.0)


def test_standardize_array_two_elements():
    assert np.allclose(standardize_array([1, 3]), [-1.0, 1.0])


def test_standardize_array_constant_returns_zeros():
    assert np.all(standardize_array([7, 7, 7]) == 0.0)


def test_correlation_sentinels():
    assert calculate_correlation([], []) == 0.0
    assert calculate_correlation([1, 2], [1]) == 0.0
    assert calculate_correlation([5, 5, 5], [1, 2, 3]) == 0.0


def test_correlation_perfect():
    assert calculate_correlation([1, 2, 3], [2, 4, 6]) == pytest.approx(1.0)
    assert calculate_correlation([1, 2, 3], [6, 4, 2]) == pytest.approx(-1.0)


def test_correlation_symmetric_and_reflexive():
    rng = np.random.default_rng(7)
    a = rng.normal(size=50)
    b = a * 0.5 + rng.normal(size=50)

    assert calculate_correlation(a, b) == calculate_correlation(b, a)
    assert calculate_correlation(a, a) == pytest.approx(1.0)


def test_r2_sentinels_and_perfect_fit():
    assert calculate_r2([], []) == 0.0
    assert calculate_r2([1, 2], [1]) == 0.0
    assert calculate_r2([5, 5, 5], [4, 5, 6]) == 0.0
    assert calculate_r2([1, 2, 3], [1, 2, 3]) == pytest.approx(1.0)


def test_mae_and_rmse():
    assert calculate_mae([1, 2, 3], [1, 2, 3]) == 0.0
    assert calculate_mae([1, 2, 3], [2, 1, 3]) == pytest.approx(2 / 3)
    assert calculate_rmse([1, 2, 3], [1, 2, 3]) == 0.0
    assert calculate_rmse([1, 2, 3], [2, 1, 3]) == pytest.approx(np.sqrt(2 / 3))


def test_mae_and_rmse_undefined_is_infinite():
    assert calculate_mae([], []) == float('inf')
    assert calculate_mae([1, 2], [1]) == float('inf')
    assert calculate_rmse([], []) == float('inf')
    assert calculate_rmse([1], [1, 2]) == float('inf')


def test_train_test_split_sizes_without_shuffle():
    X = np.arange(20).reshape(10, 2)
    y = np.arange(1, 11)

    split = train_test_split(X, y, 0.3, shuffle=False)
    assert len(split.X_train) == 7
    assert len(split.X_test) == 3
    assert len(split.y_train) == 7
    assert len(split.y_test) == 3


def test_train_test_split_preserves_order_without_shuffle():
    X = np.arange(10).reshape(10, 1)
    y = np.arange(1, 11)

    X_train, X_test, y_train, y_test = train_test_split(X, y, 0.2, shuffle=False)
    assert y_train.tolist() == [1, 2, 3, 4, 5, 6, 7, 8]
    assert y_test.tolist() == [9, 10]


def test_train_test_split_seeded_shuffle_is_reproducible():
    X = np.arange(30).reshape(30, 1)
    y = np.arange(30)

    first = train_test_split(X, y, 0.2, shuffle=True, random_state=3)
    second = train_test_split(X, y, 0.2, shuffle=True, random_state=3)

    assert np.array_equal(first.y_test, second.y_test)
    assert not np.array_equal(first.y_train, np.arange(24))


def test_k_fold_split_counts_and_remainder():
    assert len(k_fold_split(100, 5)) == 5

    folds = k_fold_split(13, 3)
    assert [len(f.test_indices) for f in folds] == [4, 4, 5]


def test_k_fold_split_disjoint_folds():
    for fold in k_fold_split(20, 4):
        train = set(fold.train_indices.tolist())
        test = set(fold.test_indices.tolist())
        assert train.isdisjoint(test)
        assert train | test == set(range(20))


def test_k_fold_split_invalid_k():
    with pytest.raises(ValueError):
        k_fold_split(10, 0)


def test_check_random_state():
    rng = np.random.default_rng(0)
    assert check_random_state(rng) is rng
    assert isinstance(check_random_state(5), np.random.Generator)
    assert isinstance(check_random_state(None), np.random.Generator)

    assert check_random_state(5).random() == check_random_state(5).random()

    with pytest.raises(ValueError):
        check_random_state('seed')


def test_cross_val_score_linear_model():
    x = standardize_array(np.arange(20))
    X = x.reshape(-1, 1)
    y = 3 * x + 2

    scores = cross_val_score(
        LinearRegression, X, y, k=5,
        scoring=calculate_mae,
        fit_params={'learning_rate': 0.1}
    )

    assert scores.shape == (5,)
    assert np.all(scores < 0.2)
