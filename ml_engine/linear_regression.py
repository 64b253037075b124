"""
Linear Regression - From Scratch Implementation
===============================================

배치 경사하강법 + L2 정규화 기반 선형 회귀.

수학적 배경:
-----------
예측:
    ŷ_i = b + Σ_j w_j * x_ij

그래디언트 (오차 e_i = ŷ_i - y_i):
    dW_j = Σ_i e_i * x_ij
    dB   = Σ_i e_i

업데이트 (L2 정규화, bias는 정규화하지 않음):
    w_j ← w_j - lr * (dW_j / n + λ * w_j)
    b   ← b   - lr * (dB / n)

조기 종료 없이 정확히 epochs 번 반복한다.

Author: ML Engine Project
"""

import logging
from dataclasses import asdict, dataclass, replace
from typing import Any, Dict, List, Mapping, Optional, Union

import numpy as np

from .exceptions import NotFittedError

logger = logging.getLogger(__name__)


@dataclass
class LinearRegressionOptions:
    """
    fit() 하이퍼파라미터

    Parameters
    ----------
    learning_rate : float, default=0.01
        경사하강법 학습률
    epochs : int, default=1000
        반복 횟수 (수렴 여부와 무관하게 모두 수행)
    regularization : float, default=0.01
        L2 정규화 계수 λ (가중치에만 적용)
    """
    learning_rate: float = 0.01
    epochs: int = 1000
    regularization: float = 0.01


class LinearRegression:
    """
    경사하강법 선형 회귀 모델 (From Scratch)

    Parameters
    ----------
    verbose : int, default=0
        1 이상이면 학습 종료 시 최종 손실을 INFO 로그로 남긴다.

    Attributes
    ----------
    weights_ : ndarray of shape (n_features,) or None
        학습된 가중치
    bias_ : float or None
        학습된 절편
    options_ : LinearRegressionOptions
        마지막 fit에 사용된 하이퍼파라미터
    loss_history_ : ndarray of shape (epochs,)
        각 epoch 업데이트 직전의 학습 MSE

    Examples
    --------
    >>> model = LinearRegression()
    >>> model.fit([[1], [2], [3]], [3, 5, 7], learning_rate=0.1)
    >>> model.predict([[4]])
    """

    def __init__(self, verbose: int = 0):
        self.verbose = verbose

        self.weights_: Optional[np.ndarray] = None
        self.bias_: Optional[float] = None
        self.options_ = LinearRegressionOptions()
        self.loss_history_: np.ndarray = np.array([])

    @staticmethod
    def _resolve_options(
        options: Union[LinearRegressionOptions, Mapping[str, Any], None],
        overrides: Dict[str, Any]
    ) -> LinearRegressionOptions:
        if options is None:
            options = LinearRegressionOptions()
        elif not isinstance(options, LinearRegressionOptions):
            # 알 수 없는 키는 dataclass 생성자가 TypeError로 거부
            options = LinearRegressionOptions(**dict(options))

        if overrides:
            options = replace(options, **overrides)

        return options

    def fit(
        self,
        X: Any,
        y: Any,
        options: Union[LinearRegressionOptions, Mapping[str, Any], None] = None,
        **overrides
    ) -> 'LinearRegression':
        """
        경사하강법으로 모델 학습

        Parameters
        ----------
        X : array-like of shape (n_samples, n_features)
        y : array-like of shape (n_samples,)
        options : LinearRegressionOptions or dict, optional
            하이퍼파라미터. 생략하면 기본값 사용.
        **overrides
            learning_rate, epochs, regularization 개별 지정

        Returns
        -------
        self : LinearRegression
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

        self.options_ = self._resolve_options(options, overrides)
        lr = self.options_.learning_rate
        reg = self.options_.regularization

        n_samples, n_features = X.shape

        weights = np.zeros(n_features)
        bias = 0.0
        losses: List[float] = []

        for _ in range(self.options_.epochs):
            errors = X @ weights + bias - y
            losses.append(float(np.mean(errors ** 2)))

            d_weights = X.T @ errors
            d_bias = np.sum(errors)

            weights = weights - lr * (d_weights / n_samples + reg * weights)
            bias -= lr * (d_bias / n_samples)

        self.weights_ = weights
        self.bias_ = float(bias)
        self.loss_history_ = np.array(losses)

        if self.verbose > 0 and losses:
            logger.info(
                "LinearRegression 학습 완료: epochs=%d, 최종 MSE=%.6f",
                self.options_.epochs, losses[-1]
            )

        return self

    def predict(self, X: Any) -> np.ndarray:
        """
        예측 수행

        Returns
        -------
        y_pred : ndarray of shape (n_samples,)
        """
        if self.weights_ is None:
            raise NotFittedError(type(self).__name__)

        X = np.asarray(X, dtype=float)
        if X.ndim == 1:
            X = X.reshape(1, -1)

        return X @ self.weights_ + self.bias_

    def get_feature_importance(self) -> Optional[np.ndarray]:
        """
        가중치 절댓값을 피처 중요도로 반환 (학습 전이면 None)

        정규화되지 않은 단순 지표이므로 피처 간 비교가 필요하면
        입력을 표준화한 뒤 학습해야 한다.
        """
        if self.weights_ is None:
            return None

        return np.abs(self.weights_)

    def to_dict(self) -> Dict[str, Any]:
        """모델 상태를 JSON 호환 딕셔너리로 내보내기"""
        return {
            'model': type(self).__name__,
            'options': asdict(self.options_),
            'weights': None if self.weights_ is None else self.weights_.tolist(),
            'bias': self.bias_,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> 'LinearRegression':
        """to_dict() 결과로부터 모델 복원"""
        model = cls()
        model.options_ = LinearRegressionOptions(**data.get('options', {}))
        if data.get('weights') is not None:
            model.weights_ = np.asarray(data['weights'], dtype=float)
            model.bias_ = float(data['bias'])
        return model

    def __repr__(self) -> str:
        if self.weights_ is None:
            return "LinearRegression(not fitted)"

        return (
            f"LinearRegression("
            f"n_features={len(self.weights_)}, "
            f"bias={self.bias_:.4f})"
        )
