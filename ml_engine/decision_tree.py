"""
Decision Tree Regressor - From Scratch Implementation
======================================================

CART (Classification and Regression Trees) 알고리즘 기반 결정 트리 구현.

수학적 배경:
-----------
불순도 (criterion):
    variance: I(y) = (1/n) * Σ(y_i - ȳ)²
    gini:     I(y) = 1 - Σ_c p_c²

정보 이득 (Information Gain):
    Gain = I_parent - (n_left/n) * I_left - (n_right/n) * I_right

최적 분할: 인접한 고유값의 중간점 중 Gain이 최대인 (feature, threshold).
동률이면 먼저 발견된 분할을 유지한다 (피처 순서 → 임계값 순서).

종료 조건 (순서대로 확인):
    1. 샘플 수 < min_samples_split 또는 depth >= max_depth
    2. 순수 노드, 분할 없음, 또는 Gain <= min_impurity_decrease
    3. 선택된 분할의 자식이 min_samples_leaf 미만 (분할 폐기)

예측:
    leaf_prediction = mean(y_samples in leaf)

Author: ML Engine Project
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional, Tuple, Union

import numpy as np

from .exceptions import NotFittedError
from .utils import check_random_state

logger = logging.getLogger(__name__)

CRITERIA = ('variance', 'gini')


@dataclass
class LeafNode:
    """리프 노드: 도달한 학습 타겟의 평균을 예측값으로 가진다"""

    value: float
    n_samples: int = 0
    impurity: float = 0.0
    depth: int = 0


@dataclass
class SplitNode:
    """내부 노드: x[feature_idx] <= threshold 이면 왼쪽, 아니면 오른쪽"""

    feature_idx: int
    threshold: float
    left: 'TreeNode'
    right: 'TreeNode'
    n_samples: int = 0
    impurity: float = 0.0
    depth: int = 0


TreeNode = Union[LeafNode, SplitNode]


def resolve_max_features(max_features: Any, n_features: int) -> int:
    """
    각 분할에서 고려할 피처 수 결정

    - None: 모든 피처
    - int: min(max_features, n_features)
    - float: 비율 (0, 1]
    - 'sqrt': floor(sqrt(n_features))
    - 'log2': floor(log2(n_features))

    결과는 최소 1이다.
    """
    if max_features is None:
        return n_features
    if isinstance(max_features, bool):
        raise ValueError(f"지원하지 않는 max_features 값입니다: {max_features!r}")
    if isinstance(max_features, (int, np.integer)):
        return max(1, min(int(max_features), n_features))
    if isinstance(max_features, float):
        return max(1, min(int(max_features * n_features), n_features))
    if max_features == 'sqrt':
        return max(1, int(np.sqrt(n_features)))
    if max_features == 'log2':
        return max(1, int(np.log2(n_features)))

    raise ValueError(f"지원하지 않는 max_features 값입니다: {max_features!r}")


class DecisionTreeRegressor:
    """
    CART 기반 결정 트리 회귀 모델 (From Scratch)

    Parameters
    ----------
    max_depth : int or None, default=10
        트리의 최대 깊이. None이면 제한 없음.

    min_samples_split : int, default=2
        내부 노드를 분할하기 위한 최소 샘플 수.

    min_samples_leaf : int, default=1
        리프 노드에 있어야 하는 최소 샘플 수.
        최적 분할이 이 조건을 어기면 분할하지 않고 리프로 만든다.

    max_features : int, float, str or None, default=None
        각 분할에서 고려할 피처 수 (resolve_max_features 참고).
        모든 피처보다 적으면 노드마다 새로 무작위 추출한다.

    criterion : {'variance', 'gini'}, default='variance'
        불순도 척도. 'gini'는 이산 라벨 분류용.

    min_impurity_decrease : float, default=0.0
        분할을 수행하기 위한 최소 정보 이득 (이득이 이 값 이하면 리프).

    random_state : None, int or numpy.random.Generator
        피처 서브샘플링용 난수 생성기

    Attributes
    ----------
    root_ : LeafNode or SplitNode
        학습된 트리의 루트 노드

    n_features_ : int
        학습에 사용된 피처 수

    feature_importances_ : ndarray of shape (n_features,)
        피처 중요도 (불순도 감소 기반)

    tree_stats_ : dict
        트리 통계 (깊이, 노드 수, 리프 수 등)

    Examples
    --------
    >>> X = np.array([[1], [2], [3], [4], [5]])
    >>> y = np.array([1.1, 2.0, 3.1, 3.9, 5.0])
    >>> tree = DecisionTreeRegressor(max_depth=2)
    >>> tree.fit(X, y)
    >>> tree.predict(np.array([[2.5]]))
    """

    def __init__(
        self,
        max_depth: Optional[int] = 10,
        min_samples_split: int = 2,
        min_samples_leaf: int = 1,
        max_features: Any = None,
        criterion: str = 'variance',
        min_impurity_decrease: float = 0.0,
        random_state: Any = None
    ):
        if criterion not in CRITERIA:
            raise ValueError(f"criterion은 {CRITERIA} 중 하나여야 합니다: {criterion!r}")

        self.max_depth = max_depth
        self.min_samples_split = min_samples_split
        self.min_samples_leaf = min_samples_leaf
        self.max_features = max_features
        self.criterion = criterion
        self.min_impurity_decrease = min_impurity_decrease
        self.random_state = random_state

        # 학습 후 설정되는 속성들
        self.root_: Optional[TreeNode] = None
        self.n_features_: int = 0
        self.feature_importances_: Optional[np.ndarray] = None
        self.tree_stats_: Dict = {}
        self._rng: Optional[np.random.Generator] = None

    def _calculate_impurity(self, y: np.ndarray, criterion: Optional[str] = None) -> float:
        """
        노드 불순도 계산

        variance: 모분산 (MSE와 동일)
        gini:     1 - Σ p_c²
        """
        if len(y) == 0:
            return 0.0

        criterion = criterion or self.criterion

        if criterion == 'gini':
            _, counts = np.unique(y, return_counts=True)
            probs = counts / len(y)
            return float(1.0 - np.sum(probs ** 2))

        return float(np.var(y))

    def _select_features(self, n_features: int) -> np.ndarray:
        """분할 후보 피처 인덱스 (max_features 미만이면 노드마다 새로 추출)"""
        n_to_sample = resolve_max_features(self.max_features, n_features)

        if n_to_sample < n_features:
            return self._rng.choice(n_features, n_to_sample, replace=False)

        return np.arange(n_features)

    def _find_best_split(
        self,
        X: np.ndarray,
        y: np.ndarray,
        feature_indices: np.ndarray
    ) -> Tuple[Optional[int], Optional[float], float]:
        """
        최적의 분할점 탐색

        주어진 피처들과 가능한 임계값에 대해:
        1. 데이터를 left(<=threshold), right(>threshold)로 분할
        2. 정보 이득 계산
        3. 최대 정보 이득을 주는 (feature, threshold) 반환

        Returns
        -------
        best_feature : int or None
            최적 분할 피처 인덱스 (후보가 없으면 None)
        best_threshold : float or None
            최적 분할 임계값
        best_gain : float
            최대 정보 이득 (후보가 없으면 -inf)
        """
        n_samples = len(y)
        impurity_parent = self._calculate_impurity(y)

        best_gain = -np.inf
        best_feature = None
        best_threshold = None

        for feature_idx in feature_indices:
            feature_values = X[:, feature_idx]
            unique_values = np.unique(feature_values)

            if len(unique_values) < 2:
                continue

            # 인접한 고유값들의 중간점을 임계값으로 사용
            thresholds = (unique_values[:-1] + unique_values[1:]) / 2

            for threshold in thresholds:
                left_mask = feature_values <= threshold
                n_left = int(np.sum(left_mask))
                n_right = n_samples - n_left

                if n_left == 0 or n_right == 0:
                    continue

                impurity_left = self._calculate_impurity(y[left_mask])
                impurity_right = self._calculate_impurity(y[~left_mask])

                gain = impurity_parent - (
                    (n_left / n_samples) * impurity_left +
                    (n_right / n_samples) * impurity_right
                )

                if gain > best_gain:
                    best_gain = gain
                    best_feature = int(feature_idx)
                    best_threshold = float(threshold)

        return best_feature, best_threshold, best_gain

    def _make_leaf(self, y: np.ndarray, impurity: float, depth: int) -> LeafNode:
        return LeafNode(
            value=float(np.mean(y)),
            n_samples=len(y),
            impurity=impurity,
            depth=depth
        )

    def _build_tree(self, X: np.ndarray, y: np.ndarray, depth: int = 0) -> TreeNode:
        """
        재귀적으로 결정 트리 구축 (재귀 깊이는 max_depth로 제한)
        """
        n_samples = len(y)
        impurity = self._calculate_impurity(y)

        if n_samples < self.min_samples_split or (
            self.max_depth is not None and depth >= self.max_depth
        ):
            return self._make_leaf(y, impurity, depth)

        # 모든 타겟이 동일하면 어떤 분할도 이득이 없다
        if np.all(y == y[0]):
            return self._make_leaf(y, impurity, depth)

        feature_indices = self._select_features(X.shape[1])
        feature, threshold, gain = self._find_best_split(X, y, feature_indices)

        if feature is None or gain <= self.min_impurity_decrease:
            return self._make_leaf(y, impurity, depth)

        left_mask = X[:, feature] <= threshold
        n_left = int(np.sum(left_mask))

        if n_left < self.min_samples_leaf or n_samples - n_left < self.min_samples_leaf:
            return self._make_leaf(y, impurity, depth)

        return SplitNode(
            feature_idx=feature,
            threshold=threshold,
            left=self._build_tree(X[left_mask], y[left_mask], depth + 1),
            right=self._build_tree(X[~left_mask], y[~left_mask], depth + 1),
            n_samples=n_samples,
            impurity=impurity,
            depth=depth
        )

    def _calculate_feature_importances(self, node: TreeNode) -> np.ndarray:
        """
        피처 중요도 계산 (불순도 감소 기반)

        importance[i] = Σ n_samples * (I_node - 가중 I_children), feature i 분할
        """
        importances = np.zeros(self.n_features_)

        for split in self._iter_split_nodes(node):
            decrease = split.impurity - (
                (split.left.n_samples / split.n_samples) * split.left.impurity +
                (split.right.n_samples / split.n_samples) * split.right.impurity
            )
            importances[split.feature_idx] += split.n_samples * decrease

        total = np.sum(importances)
        if total > 0:
            importances /= total

        return importances

    @staticmethod
    def _iter_split_nodes(node: TreeNode):
        stack = [node]
        while stack:
            current = stack.pop()
            if isinstance(current, SplitNode):
                yield current
                stack.append(current.right)
                stack.append(current.left)

    def _calculate_tree_stats(self, node: TreeNode) -> Dict:
        """트리 통계 계산"""
        stats = {
            'max_depth': 0,
            'n_nodes': 0,
            'n_leaves': 0,
            'n_internal': 0,
            'avg_leaf_depth': 0.0
        }
        leaf_depths = []

        stack = [(node, 0)]
        while stack:
            current, depth = stack.pop()
            stats['n_nodes'] += 1
            stats['max_depth'] = max(stats['max_depth'], depth)

            if isinstance(current, LeafNode):
                stats['n_leaves'] += 1
                leaf_depths.append(depth)
            else:
                stats['n_internal'] += 1
                stack.append((current.right, depth + 1))
                stack.append((current.left, depth + 1))

        if leaf_depths:
            stats['avg_leaf_depth'] = float(np.mean(leaf_depths))

        return stats

    def fit(self, X: Any, y: Any) -> 'DecisionTreeRegressor':
        """
        결정 트리 학습

        Parameters
        ----------
        X : array-like of shape (n_samples, n_features)
            학습 데이터
        y : array-like of shape (n_samples,)
            타겟 값

        Returns
        -------
        self : DecisionTreeRegressor
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

        self.n_features_ = X.shape[1]
        self._rng = check_random_state(self.random_state)

        self.root_ = self._build_tree(X, y)
        self.feature_importances_ = self._calculate_feature_importances(self.root_)
        self.tree_stats_ = self._calculate_tree_stats(self.root_)

        logger.debug(
            "DecisionTree 학습 완료: depth=%d, leaves=%d",
            self.tree_stats_['max_depth'], self.tree_stats_['n_leaves']
        )

        return self

    def _predict_single(self, x: np.ndarray) -> float:
        """단일 샘플 예측"""
        node = self.root_

        while isinstance(node, SplitNode):
            if x[node.feature_idx] <= node.threshold:
                node = node.left
            else:
                node = node.right

        return node.value

    def predict(self, X: Any) -> np.ndarray:
        """
        예측 수행

        Parameters
        ----------
        X : array-like of shape (n_samples, n_features)
            예측할 데이터

        Returns
        -------
        y_pred : ndarray of shape (n_samples,)
            예측값
        """
        if self.root_ is None:
            raise NotFittedError(type(self).__name__)

        X = np.asarray(X, dtype=float)

        if X.ndim == 1:
            X = X.reshape(1, -1)

        return np.array([self._predict_single(x) for x in X])

    def split_feature_counts(self) -> np.ndarray:
        """피처별로 분할 노드에 사용된 횟수"""
        if self.root_ is None:
            raise NotFittedError(type(self).__name__)

        counts = np.zeros(self.n_features_)
        for split in self._iter_split_nodes(self.root_):
            counts[split.feature_idx] += 1

        return counts

    def get_depth(self) -> int:
        """트리의 최대 깊이 반환"""
        if self.root_ is None:
            return 0
        return self.tree_stats_.get('max_depth', 0)

    def get_n_leaves(self) -> int:
        """리프 노드 수 반환"""
        if self.root_ is None:
            return 0
        return self.tree_stats_.get('n_leaves', 0)

    def export_tree_structure(self) -> Dict:
        """
        트리 구조를 딕셔너리로 내보내기 (시각화/직렬화용)
        """
        def _node_to_dict(node: TreeNode) -> Dict:
            result = {
                'n_samples': node.n_samples,
                'impurity': node.impurity,
                'depth': node.depth,
            }

            if isinstance(node, LeafNode):
                result['type'] = 'leaf'
                result['value'] = node.value
            else:
                result['type'] = 'split'
                result['feature_idx'] = node.feature_idx
                result['threshold'] = node.threshold
                result['left'] = _node_to_dict(node.left)
                result['right'] = _node_to_dict(node.right)

            return result

        if self.root_ is None:
            return {}

        return _node_to_dict(self.root_)

    def get_params(self) -> Dict[str, Any]:
        """하이퍼파라미터 (random_state 제외)"""
        return {
            'max_depth': self.max_depth,
            'min_samples_split': self.min_samples_split,
            'min_samples_leaf': self.min_samples_leaf,
            'max_features': self.max_features,
            'criterion': self.criterion,
            'min_impurity_decrease': self.min_impurity_decrease,
        }

    def to_dict(self) -> Dict[str, Any]:
        """모델 상태를 JSON 호환 딕셔너리로 내보내기"""
        return {
            'model': type(self).__name__,
            'params': self.get_params(),
            'n_features': self.n_features_,
            'tree': self.export_tree_structure() or None,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> 'DecisionTreeRegressor':
        """to_dict() 결과로부터 모델 복원"""
        def _dict_to_node(node: Mapping[str, Any]) -> TreeNode:
            if node['type'] == 'leaf':
                return LeafNode(
                    value=node['value'],
                    n_samples=node['n_samples'],
                    impurity=node['impurity'],
                    depth=node['depth']
                )
            return SplitNode(
                feature_idx=node['feature_idx'],
                threshold=node['threshold'],
                left=_dict_to_node(node['left']),
                right=_dict_to_node(node['right']),
                n_samples=node['n_samples'],
                impurity=node['impurity'],
                depth=node['depth']
            )

        model = cls(**data.get('params', {}))
        if data.get('tree'):
            model.n_features_ = data['n_features']
            model.root_ = _dict_to_node(data['tree'])
            model.feature_importances_ = model._calculate_feature_importances(model.root_)
            model.tree_stats_ = model._calculate_tree_stats(model.root_)
        return model

    def __repr__(self) -> str:
        if self.root_ is None:
            return "DecisionTreeRegressor(not fitted)"

        return (
            f"DecisionTreeRegressor("
            f"depth={self.get_depth()}, "
            f"n_leaves={self.get_n_leaves()}, "
            f"n_features={self.n_features_})"
        )


# 짧은 이름
DecisionTree = DecisionTreeRegressor
