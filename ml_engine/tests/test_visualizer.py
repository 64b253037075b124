"""
MLVisualizer 테스트 (Agg 백엔드, conftest.py 참고)
"""

import matplotlib.pyplot as plt
import numpy as np
import pytest

from ml_engine import (
    DecisionTreeRegressor,
    KMeans,
    LinearRegression,
    MLVisualizer,
    RandomForestRegressor,
    calculate_mae,
    calculate_rmse,
)


@pytest.fixture
def data():
    rng = np.random.default_rng(0)
    X = rng.normal(size=(40, 3))
    y = 2 * X[:, 0] + X[:, 1] + rng.normal(size=40) * 0.1
    return X, y


@pytest.fixture(autouse=True)
def close_figures():
    yield
    plt.close('all')


def test_plot_decision_tree(data):
    X, y = data
    tree = DecisionTreeRegressor(max_depth=3).fit(X, y)

    fig = MLVisualizer().plot_decision_tree(tree, feature_names=['a', 'b', 'c'], max_depth=2)
    assert isinstance(fig, plt.Figure)


def test_plot_decision_tree_unfitted():
    with pytest.raises(ValueError):
        MLVisualizer().plot_decision_tree(DecisionTreeRegressor())


def test_plot_learning_curve(data):
    X, y = data
    model = LinearRegression().fit(X, y, epochs=50)

    fig = MLVisualizer().plot_learning_curve(model)
    assert len(fig.axes) == 2

    with pytest.raises(ValueError):
        MLVisualizer().plot_learning_curve(LinearRegression())


def test_plot_feature_importance_mixed_models(data):
    X, y = data
    models = {
        'Linear': LinearRegression().fit(X, y, epochs=50),
        'Tree': DecisionTreeRegressor(max_depth=3).fit(X, y),
        'Forest (unfitted)': RandomForestRegressor(),
    }

    fig = MLVisualizer().plot_feature_importance(models, top_k=2)
    assert len(fig.axes) == 3


def test_plot_ensemble_convergence(data):
    X, y = data
    rf = RandomForestRegressor(n_estimators=5, max_depth=3, random_state=0).fit(X, y)

    fig = MLVisualizer().plot_ensemble_convergence(rf, X, y)
    assert len(fig.axes) == 2


def test_plot_clusters(data):
    X, _ = data
    km = KMeans(k=3, random_state=0).fit(X)

    fig = MLVisualizer().plot_clusters(km, X, feature_indices=(0, 2))
    assert isinstance(fig, plt.Figure)

    with pytest.raises(ValueError):
        MLVisualizer().plot_clusters(KMeans(), X)


def test_plot_residual_analysis_and_save(data, tmp_path):
    X, y = data
    tree = DecisionTreeRegressor(max_depth=3).fit(X, y)

    viz = MLVisualizer(dpi=50)
    fig = viz.plot_residual_analysis(y, tree.predict(X))

    stats_text = "\n".join(text.get_text() for text in fig.texts)
    assert f"RMSE: {calculate_rmse(y, tree.predict(X)):.4f}" in stats_text
    assert f"MAE: {calculate_mae(y, tree.predict(X)):.4f}" in stats_text

    path = tmp_path / 'residuals.png'
    viz.save_figure(fig, str(path))
    assert path.exists()
