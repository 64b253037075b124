"""
K-Means Clustering - From Scratch Implementation
================================================

k-means++ 초기화 + Lloyd 알고리즘 기반 군집화.

수학적 배경:
-----------
1. k-means++ 초기화:
   - 첫 중심: 데이터에서 균등 추출
   - 다음 중심: 가장 가까운 기존 중심까지의 거리 제곱 D(x)²에 비례하는
     확률로 추출 (누적 확률 + 균등 난수 1회, 룰렛 휠 방식)

2. Lloyd 반복 (최대 max_iterations회):
   - 할당: 각 점을 유클리드 거리가 가장 가까운 중심에 배정
   - 갱신: 중심 = 배정된 점들의 평균
     (빈 군집은 임의의 데이터 포인트로 재초기화)
   - 수렴: Σ ||c_old - c_new|| < tolerance 이면 종료

3. Inertia:
   J = Σ_i ||x_i - c_{label_i}||²

Author: ML Engine Project
"""

import logging
from typing import Any, Dict, Mapping, Optional

import numpy as np

from .exceptions import NotFittedError
from .utils import check_random_state

logger = logging.getLogger(__name__)


class KMeans:
    """
    K-Means 군집화 모델 (From Scratch)

    Parameters
    ----------
    k : int, default=3
        군집 수

    max_iterations : int, default=100
        Lloyd 반복 최대 횟수

    tolerance : float, default=1e-4
        중심 이동량 합이 이 값보다 작으면 조기 종료

    random_state : None, int or numpy.random.Generator
        k-means++ 추출과 빈 군집 재초기화용 난수 생성기

    verbose : int, default=0
        1 이상이면 수렴 결과를 INFO 로그로 남긴다.

    Attributes
    ----------
    centroids_ : ndarray of shape (k, n_features)
        군집 중심

    labels_ : ndarray of shape (n_samples,)
        마지막 반복에서 각 학습 샘플에 할당된 군집 인덱스

    n_iter_ : int
        실제 수행된 반복 횟수

    inertia_ : float
        학습 데이터의 inertia

    Examples
    --------
    >>> km = KMeans(k=2, random_state=0)
    >>> km.fit([[0, 0], [0, 1], [10, 10], [10, 11]])
    >>> km.predict([[0, 0.5]])
    """

    def __init__(
        self,
        k: int = 3,
        max_iterations: int = 100,
        tolerance: float = 1e-4,
        random_state: Any = None,
        verbose: int = 0
    ):
        self.k = k
        self.max_iterations = max_iterations
        self.tolerance = tolerance
        self.random_state = random_state
        self.verbose = verbose

        # 학습 후 설정되는 속성들
        self.centroids_: Optional[np.ndarray] = None
        self.labels_: Optional[np.ndarray] = None
        self.n_iter_: int = 0
        self.inertia_: Optional[float] = None

    @staticmethod
    def _euclidean_distances(X: np.ndarray, centroids: np.ndarray) -> np.ndarray:
        """(n_samples, k) 유클리드 거리 행렬"""
        diff = X[:, np.newaxis, :] - centroids[np.newaxis, :, :]
        return np.sqrt(np.sum(diff ** 2, axis=2))

    def _initialize_centroids(self, X: np.ndarray, rng: np.random.Generator) -> np.ndarray:
        """k-means++ 초기화"""
        n_samples = len(X)
        centroids = [X[rng.integers(n_samples)].copy()]

        for _ in range(1, self.k):
            min_dist = np.min(self._euclidean_distances(X, np.array(centroids)), axis=1)
            sq_dist = min_dist ** 2
            total = np.sum(sq_dist)

            if total == 0:
                # 모든 점이 기존 중심과 겹치면 균등 추출
                selected = rng.integers(n_samples)
            else:
                cumulative = np.cumsum(sq_dist / total)
                selected = int(np.searchsorted(cumulative, rng.random()))
                selected = min(selected, n_samples - 1)

            centroids.append(X[selected].copy())

        return np.array(centroids)

    def _assign_clusters(self, X: np.ndarray, centroids: np.ndarray) -> np.ndarray:
        """가장 가까운 중심 인덱스 (동률이면 앞선 중심)"""
        return np.argmin(self._euclidean_distances(X, centroids), axis=1)

    def _update_centroids(
        self,
        X: np.ndarray,
        labels: np.ndarray,
        rng: np.random.Generator
    ) -> np.ndarray:
        """군집 평균으로 중심 갱신, 빈 군집은 임의의 점으로 재초기화"""
        centroids = np.empty((self.k, X.shape[1]))

        for i in range(self.k):
            members = X[labels == i]

            if len(members) == 0:
                centroids[i] = X[rng.integers(len(X))]
            else:
                centroids[i] = members.mean(axis=0)

        return centroids

    def fit(self, X: Any, y: Any = None) -> 'KMeans':
        """
        군집화 학습

        Parameters
        ----------
        X : array-like of shape (n_samples, n_features)
            학습 데이터
        y : ignored
            다른 모델과 같은 fit(X, y) 시그니처를 위한 자리

        Returns
        -------
        self : KMeans
        """
        X = np.asarray(X, dtype=float)
        if X.ndim == 1:
            X = X.reshape(-1, 1)

        n_samples = len(X)
        if self.k < 1 or self.k > n_samples:
            raise ValueError(
                f"k는 1 이상 샘플 수({n_samples}) 이하여야 합니다: {self.k}"
            )

        rng = check_random_state(self.random_state)

        centroids = self._initialize_centroids(X, rng)
        labels = None
        self.n_iter_ = 0

        for iteration in range(self.max_iterations):
            labels = self._assign_clusters(X, centroids)
            new_centroids = self._update_centroids(X, labels, rng)

            shift = float(np.sum(np.sqrt(np.sum((centroids - new_centroids) ** 2, axis=1))))

            centroids = new_centroids
            self.n_iter_ = iteration + 1

            logger.debug("KMeans 반복 %d: shift=%.6f", self.n_iter_, shift)

            if shift < self.tolerance:
                break

        # max_iterations=0: 초기 중심 기준으로 한 번만 할당
        if labels is None:
            labels = self._assign_clusters(X, centroids)

        self.centroids_ = centroids
        self.labels_ = labels
        self.inertia_ = self.get_inertia(X)

        if self.verbose > 0:
            logger.info(
                "KMeans 학습 완료: k=%d, 반복=%d, inertia=%.4f",
                self.k, self.n_iter_, self.inertia_
            )

        return self

    def predict(self, X: Any) -> np.ndarray:
        """
        가장 가까운 학습된 중심으로 군집 할당

        Returns
        -------
        labels : ndarray of shape (n_samples,)
        """
        if self.centroids_ is None:
            raise NotFittedError(type(self).__name__)

        X = np.asarray(X, dtype=float)
        if X.ndim == 1:
            X = X.reshape(1, -1)

        return self._assign_clusters(X, self.centroids_)

    def fit_predict(self, X: Any) -> np.ndarray:
        """fit 후 학습 데이터의 군집 라벨 반환"""
        return self.fit(X).labels_

    def get_inertia(self, X: Any) -> float:
        """
        Inertia (각 점과 할당된 중심 사이 거리 제곱의 합)

        마지막 fit의 labels_를 사용하므로 X는 학습 데이터와 같은 행 순서여야
        한다. 학습 전이면 inf.
        """
        if self.centroids_ is None or self.labels_ is None:
            return float('inf')

        X = np.asarray(X, dtype=float)
        if X.ndim == 1:
            X = X.reshape(-1, 1)

        if len(X) != len(self.labels_):
            raise ValueError(
                f"X의 샘플 수가 학습 라벨 수와 다릅니다: {len(X)} vs {len(self.labels_)}"
            )

        assigned = self.centroids_[self.labels_]
        return float(np.sum((X - assigned) ** 2))

    def to_dict(self) -> Dict[str, Any]:
        """모델 상태를 JSON 호환 딕셔너리로 내보내기"""
        return {
            'model': type(self).__name__,
            'params': {
                'k': self.k,
                'max_iterations': self.max_iterations,
                'tolerance': self.tolerance,
            },
            'centroids': None if self.centroids_ is None else self.centroids_.tolist(),
            'labels': None if self.labels_ is None else self.labels_.tolist(),
            'n_iter': self.n_iter_,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> 'KMeans':
        """to_dict() 결과로부터 모델 복원"""
        model = cls(**data.get('params', {}))
        if data.get('centroids') is not None:
            model.centroids_ = np.asarray(data['centroids'], dtype=float)
        if data.get('labels') is not None:
            model.labels_ = np.asarray(data['labels'], dtype=int)
        model.n_iter_ = data.get('n_iter', 0)
        return model

    def __repr__(self) -> str:
        if self.centroids_ is None:
            return "KMeans(not fitted)"

        inertia_str = f", inertia={self.inertia_:.4f}" if self.inertia_ is not None else ""

        return f"KMeans(k={self.k}, n_iter={self.n_iter_}{inertia_str})"
