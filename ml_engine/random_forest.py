"""
Random Forest Regressor - From Scratch Implementation
=====================================================

배깅(Bootstrap Aggregating) + 랜덤 피처 선택을 결합한 앙상블 방법

수학적 배경:
-----------
1. 배깅 (Bootstrap Aggregating):
   - 원본 데이터에서 복원 추출로 n개의 부트스트랩 샘플 생성
   - 각 샘플로 독립적인 트리 학습
   - 분산 감소: Var(평균) = Var(개별) / n (독립인 경우)
   - bootstrap=False면 모든 트리가 전체 데이터를 사용 (앙상블 효과 약화)

2. 랜덤 피처 선택:
   - 분할마다 max_features개의 피처를 새로 추출 (트리당 한 번이 아님)
   - 트리 간 상관관계 감소 → 앙상블 효과 증대

3. Out-of-Bag (OOB) 오차:
   - 각 트리 학습에 사용되지 않은 샘플(~37%)로 오차 추정

   P(샘플이 선택되지 않음) = (1 - 1/n)^n ≈ e^{-1} ≈ 0.368

4. 최종 예측:
   ŷ = (1/M) * Σ h_m(x)
   (모든 트리 예측의 단순 평균)

병렬 학습:
---------
트리는 서로 독립이므로 n_jobs > 1이면 스레드 풀에서 동시에 학습한다.
트리별 시드는 학습 전에 포레스트 난수 생성기에서 순서대로 뽑으므로
같은 random_state라면 n_jobs와 무관하게 동일한 포레스트가 만들어진다.

Author: ML Engine Project
"""

import logging
import os
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple

import numpy as np

from .decision_tree import DecisionTreeRegressor, resolve_max_features
from .exceptions import NotFittedError
from .utils import calculate_r2, check_random_state

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[float], None]


class RandomForestRegressor:
    """
    Random Forest 회귀 모델 (From Scratch)

    Parameters
    ----------
    n_estimators : int, default=100
        트리 개수

    max_depth : int or None, default=10
        각 트리의 최대 깊이

    min_samples_split : int, default=2
        내부 노드를 분할하기 위한 최소 샘플 수

    min_samples_leaf : int, default=1
        리프 노드에 있어야 하는 최소 샘플 수

    max_features : str or int or float, default='sqrt'
        각 분할에서 고려할 피처 수
        - 'sqrt': floor(sqrt(n_features))
        - 'log2': floor(log2(n_features))
        - int: min(max_features, n_features)
        - float: 비율
        - None: 모든 피처

    bootstrap : bool, default=True
        부트스트랩 샘플 사용 여부

    oob_score : bool, default=False
        Out-of-Bag 점수 계산 여부 (bootstrap=True일 때만 의미 있음)

    random_state : None, int or numpy.random.Generator
        랜덤 시드

    n_jobs : int or None, default=1
        동시에 학습할 트리 수. -1이면 CPU 수만큼.

    verbose : int, default=0
        1 이상이면 진행 상황을 INFO 로그로 남긴다.

    Attributes
    ----------
    estimators_ : list of DecisionTreeRegressor
        학습된 트리들

    max_features_ : int
        실제로 사용된 분할당 피처 수

    feature_importances_ : ndarray of shape (n_features,)
        피처 중요도 (트리별 불순도 감소 중요도의 평균)

    oob_score_ : float
        Out-of-Bag R² 점수 (oob_score=True인 경우)

    oob_prediction_ : ndarray
        각 샘플의 OOB 예측값

    Examples
    --------
    >>> X = np.random.randn(100, 5)
    >>> y = X[:, 0] * 2 + X[:, 1] + np.random.randn(100) * 0.1
    >>> rf = RandomForestRegressor(n_estimators=50, random_state=0)
    >>> rf.fit(X, y, on_progress=lambda p: print(f"{p:.0%}"))
    >>> predictions = rf.predict(X[:5])
    """

    def __init__(
        self,
        n_estimators: int = 100,
        max_depth: Optional[int] = 10,
        min_samples_split: int = 2,
        min_samples_leaf: int = 1,
        max_features: Any = 'sqrt',
        bootstrap: bool = True,
        oob_score: bool = False,
        random_state: Any = None,
        n_jobs: Optional[int] = 1,
        verbose: int = 0
    ):
        self.n_estimators = n_estimators
        self.max_depth = max_depth
        self.min_samples_split = min_samples_split
        self.min_samples_leaf = min_samples_leaf
        self.max_features = max_features
        self.bootstrap = bootstrap
        self.oob_score = oob_score
        self.random_state = random_state
        self.n_jobs = n_jobs
        self.verbose = verbose

        # 학습 후 설정되는 속성들
        self.estimators_: List[DecisionTreeRegressor] = []
        self.max_features_: int = 0
        self.feature_importances_: Optional[np.ndarray] = None
        self.oob_score_: Optional[float] = None
        self.oob_prediction_: Optional[np.ndarray] = None
        self.n_features_: int = 0

        # 학습 과정 기록
        self.training_history_: List[Dict] = []

    def _resolve_n_workers(self) -> int:
        if self.n_jobs is None:
            return 1

        if self.n_jobs < 0:
            workers = os.cpu_count() or 1
        else:
            workers = max(1, self.n_jobs)

        return min(workers, self.n_estimators)

    def _fit_single_tree(
        self,
        X: np.ndarray,
        y: np.ndarray,
        seed: int
    ) -> Tuple[DecisionTreeRegressor, np.ndarray]:
        """트리 하나 학습 (부트스트랩 추출 + 노드별 피처 추출에 같은 생성기 사용)"""
        rng = np.random.default_rng(seed)
        n_samples = len(y)

        if self.bootstrap:
            sample_indices = rng.integers(0, n_samples, size=n_samples)
        else:
            sample_indices = np.arange(n_samples)

        tree = DecisionTreeRegressor(
            max_depth=self.max_depth,
            min_samples_split=self.min_samples_split,
            min_samples_leaf=self.min_samples_leaf,
            max_features=self.max_features_,
            random_state=rng
        )
        tree.fit(X[sample_indices], y[sample_indices])

        return tree, sample_indices

    def _report_progress(
        self,
        completed: int,
        on_progress: Optional[ProgressCallback]
    ):
        if on_progress is not None:
            on_progress(completed / self.n_estimators)

        if self.verbose > 0 and completed % max(1, self.n_estimators // 10) == 0:
            logger.info("트리 %d/%d 완료", completed, self.n_estimators)

    def fit(
        self,
        X: Any,
        y: Any,
        on_progress: Optional[ProgressCallback] = None
    ) -> 'RandomForestRegressor':
        """
        Random Forest 모델 학습

        Parameters
        ----------
        X : array-like of shape (n_samples, n_features)
            학습 데이터
        y : array-like of shape (n_samples,)
            타겟 값
        on_progress : callable, optional
            트리 하나가 끝날 때마다 완료 비율(0~1]을 인자로 호출된다.
            병렬 학습에서도 호출 스레드에서 실행된다.

        Returns
        -------
        self : RandomForestRegressor
            학습된 모델
        """
        X = np.asarray(X, dtype=float)
        y = np.asarray(y, dtype=float).ravel()

        if X.ndim == 1:
            X = X.reshape(-1, 1)

        if X.shape[0] != len(y):
            raise ValueError(
                f"X와 y의 샘플 수가 일치하지 않습니다: {X.shape[0]} vs {len(y)}"
            )
        if len(y) == 0:
            raise ValueError("학습 데이터가 비어 있습니다.")
        if self.n_estimators < 1:
            raise ValueError(f"n_estimators는 1 이상이어야 합니다: {self.n_estimators}")

        n_samples, n_features = X.shape
        self.n_features_ = n_features
        self.max_features_ = resolve_max_features(self.max_features, n_features)

        rng = check_random_state(self.random_state)
        seeds = rng.integers(0, 2**31, size=self.n_estimators)

        n_workers = self._resolve_n_workers()
        results: List[Optional[Tuple[DecisionTreeRegressor, np.ndarray]]] = [None] * self.n_estimators

        if self.verbose > 0:
            logger.info(
                "Random Forest 학습 시작: %d개 트리, max_features=%d, workers=%d",
                self.n_estimators, self.max_features_, n_workers
            )

        if n_workers == 1:
            for m, seed in enumerate(seeds):
                results[m] = self._fit_single_tree(X, y, seed)
                self._report_progress(m + 1, on_progress)
        else:
            with ThreadPoolExecutor(max_workers=n_workers) as executor:
                futures = {
                    executor.submit(self._fit_single_tree, X, y, seed): m
                    for m, seed in enumerate(seeds)
                }
                for completed, future in enumerate(as_completed(futures), start=1):
                    results[futures[future]] = future.result()
                    self._report_progress(completed, on_progress)

        self.estimators_ = [tree for tree, _ in results]

        self.training_history_ = [
            {
                'tree_idx': m + 1,
                'tree_depth': tree.get_depth(),
                'tree_n_leaves': tree.get_n_leaves(),
                'n_unique_samples': len(np.unique(sample_indices)),
            }
            for m, (tree, sample_indices) in enumerate(results)
        ]

        self.feature_importances_ = np.mean(
            [tree.feature_importances_ for tree in self.estimators_], axis=0
        )

        if self.oob_score:
            self._compute_oob_score(X, y, [indices for _, indices in results])

        return self

    def _compute_oob_score(
        self,
        X: np.ndarray,
        y: np.ndarray,
        sample_indices: List[np.ndarray]
    ):
        """학습에 쓰이지 않은 샘플로 R² 추정"""
        n_samples = len(y)
        oob_sum = np.zeros(n_samples)
        oob_count = np.zeros(n_samples)

        for tree, indices in zip(self.estimators_, sample_indices):
            oob_mask = np.ones(n_samples, dtype=bool)
            oob_mask[indices] = False

            if np.any(oob_mask):
                oob_sum[oob_mask] += tree.predict(X[oob_mask])
                oob_count[oob_mask] += 1

        valid = oob_count > 0
        if not np.any(valid):
            logger.warning("OOB 샘플이 없어 oob_score_를 계산할 수 없습니다 (bootstrap=%s)", self.bootstrap)
            self.oob_score_ = None
            self.oob_prediction_ = None
            return

        self.oob_prediction_ = np.full(n_samples, np.nan)
        self.oob_prediction_[valid] = oob_sum[valid] / oob_count[valid]
        self.oob_score_ = calculate_r2(y[valid], self.oob_prediction_[valid])

        if self.verbose > 0:
            logger.info("OOB R² Score: %.4f", self.oob_score_)

    def _check_fitted(self):
        if len(self.estimators_) == 0:
            raise NotFittedError(type(self).__name__)

    def _all_predictions(self, X: Any) -> np.ndarray:
        self._check_fitted()

        X = np.asarray(X, dtype=float)
        if X.ndim == 1:
            X = X.reshape(1, -1)

        return np.array([tree.predict(X) for tree in self.estimators_])

    def predict(self, X: Any) -> np.ndarray:
        """
        예측 수행 (모든 트리 예측의 평균)

        Parameters
        ----------
        X : array-like of shape (n_samples, n_features)
            예측할 데이터

        Returns
        -------
        y_pred : ndarray of shape (n_samples,)
            예측값
        """
        return np.mean(self._all_predictions(X), axis=0)

    def predict_std(self, X: Any) -> np.ndarray:
        """트리 예측의 표준편차 (불확실성 추정)"""
        return np.std(self._all_predictions(X), axis=0)

    def staged_predict(self, X: Any) -> np.ndarray:
        """
        각 트리 추가 후의 예측 반환 (수렴 분석용)

        Returns
        -------
        predictions : ndarray of shape (n_estimators, n_samples)
            각 단계에서의 누적 평균 예측값
        """
        predictions = self._all_predictions(X)
        n_trees = np.arange(1, len(predictions) + 1).reshape(-1, 1)
        return np.cumsum(predictions, axis=0) / n_trees

    def get_feature_importance(self, X: Any = None) -> np.ndarray:
        """
        분할 횟수 기반 피처 중요도

        모든 트리의 분할 노드에서 각 피처가 사용된 횟수를 세고 합이 1이
        되도록 정규화한다 (분할이 하나도 없으면 모두 0). 불순도 감소량은
        반영하지 않으므로 feature_importances_와 다를 수 있다.

        Parameters
        ----------
        X : array-like, optional
            주어지면 학습 때와 피처 수가 같은지 확인한다.
        """
        self._check_fitted()

        if X is not None:
            n_columns = np.atleast_2d(np.asarray(X, dtype=float)).shape[1]
            if n_columns != self.n_features_:
                raise ValueError(
                    f"피처 수가 학습 데이터와 다릅니다: {n_columns} vs {self.n_features_}"
                )

        counts = np.sum([tree.split_feature_counts() for tree in self.estimators_], axis=0)

        total = np.sum(counts)
        if total > 0:
            return counts / total

        return counts

    def get_params(self) -> Dict[str, Any]:
        """하이퍼파라미터 (random_state, n_jobs, verbose 제외)"""
        return {
            'n_estimators': self.n_estimators,
            'max_depth': self.max_depth,
            'min_samples_split': self.min_samples_split,
            'min_samples_leaf': self.min_samples_leaf,
            'max_features': self.max_features,
            'bootstrap': self.bootstrap,
            'oob_score': self.oob_score,
        }

    def to_dict(self) -> Dict[str, Any]:
        """모델 상태를 JSON 호환 딕셔너리로 내보내기"""
        return {
            'model': type(self).__name__,
            'params': self.get_params(),
            'n_features': self.n_features_,
            'max_features_': self.max_features_,
            'oob_score_': self.oob_score_,
            'estimators': [tree.to_dict() for tree in self.estimators_],
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> 'RandomForestRegressor':
        """to_dict() 결과로부터 모델 복원"""
        model = cls(**data.get('params', {}))
        model.n_features_ = data.get('n_features', 0)
        model.max_features_ = data.get('max_features_', 0)
        model.oob_score_ = data.get('oob_score_')
        model.estimators_ = [
            DecisionTreeRegressor.from_dict(tree) for tree in data.get('estimators', [])
        ]
        if model.estimators_:
            model.feature_importances_ = np.mean(
                [tree.feature_importances_ for tree in model.estimators_], axis=0
            )
        return model

    def __repr__(self) -> str:
        if len(self.estimators_) == 0:
            return "RandomForestRegressor(not fitted)"

        oob_str = f", oob_score={self.oob_score_:.4f}" if self.oob_score_ is not None else ""

        return (
            f"RandomForestRegressor("
            f"n_estimators={len(self.estimators_)}, "
            f"max_depth={self.max_depth}"
            f"{oob_str})"
        )
