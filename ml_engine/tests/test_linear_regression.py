"""
LinearRegression 테스트
"""

import numpy as np
import pytest

from ml_engine import LinearRegression, LinearRegressionOptions, NotFittedError, calculate_r2


X_LINE = np.array([[1], [2], [3], [4], [5]], dtype=float)
Y_LINE = 2 * X_LINE.ravel() + 1


def test_fits_line():
    model = LinearRegression()
    model.fit(X_LINE, Y_LINE, epochs=1000, learning_rate=0.1)

    assert calculate_r2(Y_LINE, model.predict(X_LINE)) > 0.95
    assert model.weights_[0] == pytest.approx(2.0, abs=0.3)
    assert model.bias_ == pytest.approx(1.0, abs=0.5)


def test_predict_before_fit_raises():
    with pytest.raises(NotFittedError, match="LinearRegression"):
        LinearRegression().predict([[1, 2]])


def test_feature_importance_is_absolute_weight():
    model = LinearRegression()
    assert model.get_feature_importance() is None

    model.fit([[1, 2], [3, 4], [5, 6]], [5, 11, 17], {'epochs': 500, 'learning_rate': 0.01})
    importance = model.get_feature_importance()

    assert len(importance) == 2
    assert np.all(importance >= 0)
    assert np.allclose(importance, np.abs(model.weights_))


def test_options_sources():
    model = LinearRegression()

    model.fit(X_LINE, Y_LINE, LinearRegressionOptions(epochs=10))
    assert model.options_ == LinearRegressionOptions(epochs=10)

    model.fit(X_LINE, Y_LINE, {'epochs': 20, 'regularization': 0.0})
    assert model.options_.epochs == 20
    assert model.options_.regularization == 0.0
    assert model.options_.learning_rate == 0.01

    model.fit(X_LINE, Y_LINE, {'epochs': 20}, epochs=5)
    assert model.options_.epochs == 5


def test_unknown_option_rejected():
    with pytest.raises(TypeError):
        LinearRegression().fit(X_LINE, Y_LINE, {'momentum': 0.9})


def test_runs_exact_epoch_count():
    model = LinearRegression().fit(X_LINE, Y_LINE, epochs=37)
    assert len(model.loss_history_) == 37
    assert model.loss_history_[-1] < model.loss_history_[0]


def test_zero_epochs_leaves_zero_model():
    model = LinearRegression().fit(X_LINE, Y_LINE, epochs=0)
    assert np.all(model.weights_ == 0)
    assert model.bias_ == 0.0
    assert np.all(model.predict(X_LINE) == 0)


def test_regularization_shrinks_weights():
    plain = LinearRegression().fit(X_LINE, Y_LINE, learning_rate=0.1, regularization=0.0)
    strong = LinearRegression().fit(X_LINE, Y_LINE, learning_rate=0.1, regularization=1.0)

    assert abs(strong.weights_[0]) < abs(plain.weights_[0])


def test_bias_is_not_regularized():
    X = np.zeros((4, 1))
    y = np.full(4, 5.0)

    model = LinearRegression().fit(X, y, learning_rate=0.1, regularization=10.0)
    assert model.bias_ == pytest.approx(5.0, abs=1e-6)


def test_sample_count_mismatch():
    with pytest.raises(ValueError):
        LinearRegression().fit([[1], [2]], [1])


def test_dict_round_trip_predicts_identically():
    model = LinearRegression().fit(X_LINE, Y_LINE, learning_rate=0.1)
    restored = LinearRegression.from_dict(model.to_dict())

    assert np.allclose(restored.predict(X_LINE), model.predict(X_LINE))
    assert restored.options_ == model.options_
