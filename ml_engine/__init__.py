"""
ML Engine - 퀀트 스캐너용 머신러닝 엔진
=======================================

외부 ML 라이브러리 없이 NumPy만으로 구현한 회귀/군집화 모델과
하위 분석 모듈(팩터 가중치, 적응형 스코어링, 이상치 탐지, 레짐 분류)이
공통으로 사용하는 통계 유틸리티.

구현된 모델 (모두 fit(X, y) -> self, predict(X) 규약):
- LinearRegression: 경사하강법 + L2 정규화 선형 회귀
- DecisionTreeRegressor: CART 기반 결정 트리
- RandomForestRegressor: 배깅 + 노드별 랜덤 피처 선택 앙상블
- KMeans: k-means++ 초기화 + Lloyd 알고리즘

Author: ML Engine Project
"""

from .exceptions import NotFittedError
from .utils import (
    Fold,
    TrainTestSplit,
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
from .linear_regression import LinearRegression, LinearRegressionOptions
from .decision_tree import DecisionTree, DecisionTreeRegressor, LeafNode, SplitNode
from .random_forest import RandomForestRegressor
from .kmeans import KMeans
from .visualizer import MLVisualizer

__all__ = [
    'NotFittedError',
    'Fold',
    'TrainTestSplit',
    'calculate_correlation',
    'calculate_mae',
    'calculate_r2',
    'calculate_rmse',
    'check_random_state',
    'cross_val_score',
    'k_fold_split',
    'normalize_array',
    'standardize_array',
    'train_test_split',
    'LinearRegression',
    'LinearRegressionOptions',
    'DecisionTree',
    'DecisionTreeRegressor',
    'LeafNode',
    'SplitNode',
    'RandomForestRegressor',
    'KMeans',
    'MLVisualizer'
]

__version__ = '1.0.0'
