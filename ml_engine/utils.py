"""
Statistics Utilities - 통계 및 데이터 분할 유틸리티
==================================================

모든 모델과 이를 사용하는 분석 코드가 공통으로 쓰는 수치 함수 모음.

에러 처리 규칙:
--------------
입력이 비어 있거나 길이가 다를 때 예외 대신 센티널 값을 반환한다.
    - calculate_correlation, calculate_r2 -> 0.0
    - calculate_mae, calculate_rmse      -> inf (정의되지 않은 오차)

난수 사용:
---------
셔플이 필요한 함수는 random_state 인자를 받아 check_random_state()로
numpy Generator를 얻는다. 같은 시드를 주면 결과가 재현된다.

Author: ML Engine Project
"""

import numpy as np
from typing import Any, Callable, Dict, List, NamedTuple, Optional, Sequence


class TrainTestSplit(NamedTuple):
    """train_test_split 결과"""
    X_train: np.ndarray
    X_test: np.ndarray
    y_train: np.ndarray
    y_test: np.ndarray


class Fold(NamedTuple):
    """k_fold_split의 단일 폴드 (인덱스만 보관)"""
    train_indices: np.ndarray
    test_indices: np.ndarray


def check_random_state(seed: Any = None) -> np.random.Generator:
    """
    시드를 numpy Generator로 변환

    Parameters
    ----------
    seed : None, int or numpy.random.Generator
        - None: OS 엔트로피로 초기화된 새 Generator
        - int: 해당 시드로 초기화된 Generator
        - Generator: 그대로 반환 (호출자와 난수 스트림 공유)
    """
    if seed is None:
        return np.random.default_rng()
    if isinstance(seed, np.random.Generator):
        return seed
    if isinstance(seed, (int, np.integer)) and not isinstance(seed, bool):
        return np.random.default_rng(int(seed))
    raise ValueError(f"random_state로 사용할 수 없는 값입니다: {seed!r}")


def normalize_array(values: Sequence[float]) -> np.ndarray:
    """
    [0, 1] 범위로 정규화

    x' = (x - min) / (max - min)

    max == min이면 모든 값을 0.5로 반환한다.
    """
    arr = np.asarray(values, dtype=float)
    if arr.size == 0:
        return arr

    min_val = arr.min()
    value_range = arr.max() - min_val

    if value_range == 0:
        return np.full(arr.shape, 0.5)

    return (arr - min_val) / value_range


def standardize_array(values: Sequence[float]) -> np.ndarray:
    """
    평균 0, 표준편차 1로 표준화 (모분산, n으로 나눔)

    표준편차가 0이면 모든 값을 0으로 반환한다.
    """
    arr = np.asarray(values, dtype=float)
    if arr.size == 0:
        return arr

    std = np.std(arr)
    if std == 0:
        return np.zeros(arr.shape)

    return (arr - np.mean(arr)) / std


def calculate_correlation(a: Sequence[float], b: Sequence[float]) -> float:
    """
    피어슨 상관계수

    r = Σ(a_i - ā)(b_i - b̄) / sqrt(Σ(a_i - ā)² * Σ(b_i - b̄)²)

    길이가 다르거나, 비어 있거나, 한쪽 분산이 0이면 0.0을 반환한다.
    """
    a = np.asarray(a, dtype=float)
    b = np.asarray(b, dtype=float)

    if len(a) != len(b) or len(a) == 0:
        return 0.0

    diff_a = a - np.mean(a)
    diff_b = b - np.mean(b)

    denominator = np.sqrt(np.sum(diff_a ** 2) * np.sum(diff_b ** 2))
    if denominator == 0:
        return 0.0

    return float(np.sum(diff_a * diff_b) / denominator)


def calculate_r2(actual: Sequence[float], predicted: Sequence[float]) -> float:
    """
    결정계수 R²

    R² = 1 - SS_res / SS_tot

    입력이 비어 있거나 길이가 다르거나 SS_tot == 0이면 0.0을 반환한다.
    """
    actual = np.asarray(actual, dtype=float)
    predicted = np.asarray(predicted, dtype=float)

    if len(actual) != len(predicted) or len(actual) == 0:
        return 0.0

    ss_total = np.sum((actual - np.mean(actual)) ** 2)
    ss_residual = np.sum((actual - predicted) ** 2)

    if ss_total == 0:
        return 0.0

    return float(1 - ss_residual / ss_total)


def calculate_mae(actual: Sequence[float], predicted: Sequence[float]) -> float:
    """평균 절대 오차. 입력이 비어 있거나 길이가 다르면 inf."""
    actual = np.asarray(actual, dtype=float)
    predicted = np.asarray(predicted, dtype=float)

    if len(actual) != len(predicted) or len(actual) == 0:
        return float('inf')

    return float(np.mean(np.abs(actual - predicted)))


def calculate_rmse(actual: Sequence[float], predicted: Sequence[float]) -> float:
    """평균 제곱근 오차. 입력이 비어 있거나 길이가 다르면 inf."""
    actual = np.asarray(actual, dtype=float)
    predicted = np.asarray(predicted, dtype=float)

    if len(actual) != len(predicted) or len(actual) == 0:
        return float('inf')

    return float(np.sqrt(np.mean((actual - predicted) ** 2)))


def train_test_split(
    X: Any,
    y: Any,
    test_ratio: float = 0.2,
    shuffle: bool = True,
    random_state: Any = None
) -> TrainTestSplit:
    """
    학습/테스트 분할

    Parameters
    ----------
    X : array-like of shape (n_samples, n_features)
    y : array-like of shape (n_samples,)
    test_ratio : float, default=0.2
        테스트 세트 비율. 테스트 크기 = floor(n * test_ratio)
    shuffle : bool, default=True
        True면 분할 전에 인덱스를 무작위 순열(Fisher-Yates)로 섞는다.
    random_state : None, int or Generator
        셔플용 난수 생성기

    Returns
    -------
    TrainTestSplit
        (X_train, X_test, y_train, y_test)
    """
    X = np.asarray(X, dtype=float)
    y = np.asarray(y, dtype=float)

    n = len(X)
    test_size = int(np.floor(n * test_ratio))
    train_size = n - test_size

    if shuffle:
        rng = check_random_state(random_state)
        indices = rng.permutation(n)
    else:
        indices = np.arange(n)

    train_idx = indices[:train_size]
    test_idx = indices[train_size:]

    return TrainTestSplit(X[train_idx], X[test_idx], y[train_idx], y[test_idx])


def k_fold_split(n: int, k: int = 5) -> List[Fold]:
    """
    K-Fold 교차검증 인덱스 생성

    셔플 없이 연속 구간으로 나누며, 폴드 크기는 floor(n/k)이고
    마지막 폴드가 나머지를 모두 가진다.
    """
    if k < 1:
        raise ValueError(f"k는 1 이상이어야 합니다: {k}")

    fold_size = n // k
    indices = np.arange(n)
    folds = []

    for i in range(k):
        start = i * fold_size
        end = n if i == k - 1 else (i + 1) * fold_size

        test_indices = indices[start:end]
        train_indices = np.concatenate([indices[:start], indices[end:]])

        folds.append(Fold(train_indices, test_indices))

    return folds


def cross_val_score(
    model_factory: Callable[[], Any],
    X: Any,
    y: Any,
    k: int = 5,
    scoring: Callable[[Sequence[float], Sequence[float]], float] = calculate_r2,
    fit_params: Optional[Dict[str, Any]] = None
) -> np.ndarray:
    """
    K-Fold 교차검증 점수

    각 폴드마다 model_factory()로 새 모델을 만들어 학습 폴드로 fit하고
    테스트 폴드에서 scoring(y_true, y_pred)를 계산한다.

    Examples
    --------
    >>> scores = cross_val_score(
    ...     lambda: RandomForestRegressor(n_estimators=20, random_state=0),
    ...     X, y, k=5, scoring=calculate_mae
    ... )
    """
    X = np.asarray(X, dtype=float)
    y = np.asarray(y, dtype=float)
    fit_params = fit_params or {}

    scores = []
    for fold in k_fold_split(len(X), k):
        model = model_factory()
        model.fit(X[fold.train_indices], y[fold.train_indices], **fit_params)
        y_pred = model.predict(X[fold.test_indices])
        scores.append(scoring(y[fold.test_indices], y_pred))

    return np.array(scores)
