"""
ML Visualizer - 머신러닝 모델 시각화 도구
=========================================

각 모델의 학습 결과와 내부 동작을 시각화합니다.

주요 기능:
- 결정 트리 구조 시각화
- 선형 회귀 학습 곡선
- 피처 중요도 비교
- 랜덤 포레스트 예측 수렴 과정
- K-Means 군집 분포
- 잔차 분석

Author: ML Engine Project
"""

import logging
from typing import Any, Dict, List, Optional, Sequence, Tuple

import matplotlib.pyplot as plt
import numpy as np

from .utils import calculate_mae, calculate_rmse

logger = logging.getLogger(__name__)


class MLVisualizer:
    """
    머신러닝 모델 시각화 클래스

    Parameters
    ----------
    figsize : tuple, default=(12, 8)
        기본 Figure 크기

    style : str, optional
        Matplotlib 스타일 (예: 'seaborn-v0_8-whitegrid')

    dpi : int, default=100
        Figure DPI
    """

    def __init__(
        self,
        figsize: Tuple[int, int] = (12, 8),
        style: Optional[str] = None,
        dpi: int = 100
    ):
        self.figsize = figsize
        self.style = style
        self.dpi = dpi

        if self.style:
            try:
                plt.style.use(self.style)
            except OSError:
                logger.warning("Matplotlib 스타일을 찾을 수 없어 기본값을 사용합니다: %s", self.style)

        # 색상 팔레트
        self.colors = {
            'primary': '#2E86AB',
            'secondary': '#A23B72',
            'accent': '#F18F01',
            'success': '#C73E1D',
            'neutral': '#3B3B3B',
            'train': '#2E86AB',
            'val': '#F18F01',
            'test': '#C73E1D'
        }

    def plot_decision_tree(
        self,
        tree,
        feature_names: Optional[List[str]] = None,
        max_depth: int = 4,
        figsize: Optional[Tuple[int, int]] = None,
        title: str = "Decision Tree Structure"
    ) -> plt.Figure:
        """
        결정 트리 구조 시각화

        Parameters
        ----------
        tree : DecisionTreeRegressor
            시각화할 트리
        feature_names : list, optional
            피처 이름 리스트
        max_depth : int
            표시할 최대 깊이
        figsize : tuple, optional
            Figure 크기
        title : str
            그래프 제목

        Returns
        -------
        fig : matplotlib.Figure
        """
        if tree.root_ is None:
            raise ValueError("트리가 학습되지 않았습니다.")

        fig, ax = plt.subplots(figsize=figsize or (14, 10), dpi=self.dpi)

        tree_dict = tree.export_tree_structure()
        positions = self._calculate_tree_positions(tree_dict, max_depth)
        self._draw_tree_nodes(ax, tree_dict, positions, feature_names, max_depth)

        ax.set_xlim(-0.1, 1.1)
        ax.set_ylim(-0.1, 1.1)
        ax.axis('off')
        ax.set_title(title, fontsize=14, fontweight='bold', pad=20)

        plt.tight_layout()
        return fig

    def _calculate_tree_positions(
        self,
        node: Dict,
        max_depth: int,
        x: float = 0.5,
        y: float = 0.95,
        x_offset: float = 0.25,
        depth: int = 0,
        positions: Optional[Dict] = None
    ) -> Dict:
        """트리 노드 위치 계산"""
        if positions is None:
            positions = {}

        positions[id(node)] = (x, y)

        if depth >= max_depth or node['type'] == 'leaf':
            return positions

        y_child = y - 0.15
        x_offset_child = x_offset / 2

        self._calculate_tree_positions(
            node['left'], max_depth, x - x_offset, y_child,
            x_offset_child, depth + 1, positions
        )
        self._calculate_tree_positions(
            node['right'], max_depth, x + x_offset, y_child,
            x_offset_child, depth + 1, positions
        )

        return positions

    def _draw_tree_nodes(
        self,
        ax: plt.Axes,
        node: Dict,
        positions: Dict,
        feature_names: Optional[List[str]],
        max_depth: int,
        depth: int = 0
    ):
        """트리 노드와 엣지 그리기"""
        if id(node) not in positions:
            return

        x, y = positions[id(node)]
        is_leaf = node['type'] == 'leaf'

        if is_leaf:
            color = plt.cm.Greens(0.6)
            text = f"값: {node['value']:.2f}\n샘플: {node['n_samples']}"
        else:
            # 노드 색상 (깊이에 따라)
            color = plt.cm.Blues(0.3 + 0.5 * (1 - depth / max(max_depth, 1)))
            feat_idx = node['feature_idx']
            feat_name = feature_names[feat_idx] if feature_names else f"X{feat_idx}"
            text = f"{feat_name}\n≤ {node['threshold']:.2f}\n샘플: {node['n_samples']}"

        bbox = dict(
            boxstyle='round,pad=0.3',
            facecolor=color,
            edgecolor='gray',
            alpha=0.9
        )
        ax.text(x, y, text, ha='center', va='center', fontsize=8, bbox=bbox)

        if is_leaf or depth >= max_depth:
            return

        for child_key, label, label_color, dx in (
            ('left', 'T', 'green', -0.02),
            ('right', 'F', 'red', 0.02),
        ):
            child = node[child_key]
            if id(child) not in positions:
                continue

            x_child, y_child = positions[id(child)]
            ax.plot([x, x_child], [y - 0.03, y_child + 0.03],
                    'k-', linewidth=1, alpha=0.7)
            ax.text((x + x_child) / 2 + dx, (y + y_child) / 2,
                    label, fontsize=7, color=label_color)

            self._draw_tree_nodes(ax, child, positions, feature_names, max_depth, depth + 1)

    def plot_learning_curve(
        self,
        model,
        figsize: Optional[Tuple[int, int]] = None,
        title: str = "Gradient Descent Learning Curve"
    ) -> plt.Figure:
        """
        선형 회귀 경사하강법 학습 곡선

        Parameters
        ----------
        model : LinearRegression
            학습된 모델 (loss_history_ 사용)
        """
        history = np.asarray(model.loss_history_)

        if history.size == 0:
            raise ValueError("학습 이력이 없습니다.")

        epochs = np.arange(1, len(history) + 1)
        fig, axes = plt.subplots(1, 2, figsize=figsize or (14, 5), dpi=self.dpi)

        ax1 = axes[0]
        ax1.plot(epochs, history, color=self.colors['train'], linewidth=2, label='Train MSE')
        ax1.set_xlabel('Epoch', fontsize=11)
        ax1.set_ylabel('MSE', fontsize=11)
        ax1.set_title('Learning Curve', fontsize=12, fontweight='bold')
        ax1.legend(loc='upper right')
        ax1.grid(True, alpha=0.3)

        # 로그 스케일 (0 손실은 표시 불가하므로 양수만)
        ax2 = axes[1]
        positive = history > 0
        ax2.semilogy(epochs[positive], history[positive],
                     color=self.colors['secondary'], linewidth=2)
        ax2.set_xlabel('Epoch', fontsize=11)
        ax2.set_ylabel('MSE (log)', fontsize=11)
        ax2.set_title('Learning Curve (log scale)', fontsize=12, fontweight='bold')
        ax2.grid(True, alpha=0.3)

        fig.suptitle(title, fontsize=14, fontweight='bold', y=1.02)
        plt.tight_layout()
        return fig

    @staticmethod
    def _get_importances(model) -> Optional[np.ndarray]:
        if hasattr(model, 'feature_importances_'):
            return model.feature_importances_
        # LinearRegression은 학습 전이면 None 반환
        return model.get_feature_importance()

    def plot_feature_importance(
        self,
        models: Dict[str, Any],
        feature_names: Optional[List[str]] = None,
        top_k: int = 15,
        figsize: Optional[Tuple[int, int]] = None,
        title: str = "Feature Importance Comparison"
    ) -> plt.Figure:
        """
        여러 모델의 피처 중요도 비교

        Parameters
        ----------
        models : dict
            {모델명: 모델객체} 딕셔너리. feature_importances_가 있으면 사용하고,
            없으면 get_feature_importance()를 호출한다.
        feature_names : list, optional
            피처 이름 리스트
        top_k : int
            표시할 상위 피처 수

        Returns
        -------
        fig : matplotlib.Figure
        """
        n_models = len(models)
        fig, axes = plt.subplots(1, n_models, figsize=figsize or (5 * n_models, 8), dpi=self.dpi)

        if n_models == 1:
            axes = [axes]

        colors = plt.cm.Set2(np.linspace(0, 1, n_models))

        for idx, (name, model) in enumerate(models.items()):
            ax = axes[idx]
            importances = self._get_importances(model)

            if importances is None:
                ax.text(0.5, 0.5, 'Not fitted', ha='center', va='center')
                continue

            names = feature_names or [f'Feature {i}' for i in range(len(importances))]

            # 상위 k개 선택
            indices = np.argsort(importances)[::-1][:top_k]

            ax.barh(
                range(len(indices)),
                importances[indices],
                color=colors[idx],
                alpha=0.8
            )
            ax.set_yticks(range(len(indices)))
            ax.set_yticklabels([names[i] for i in indices])
            ax.invert_yaxis()
            ax.set_xlabel('Importance', fontsize=10)
            ax.set_title(name, fontsize=11, fontweight='bold')
            ax.grid(True, alpha=0.3, axis='x')

        fig.suptitle(title, fontsize=14, fontweight='bold', y=1.02)
        plt.tight_layout()
        return fig

    def plot_ensemble_convergence(
        self,
        model,
        X: np.ndarray,
        y: np.ndarray,
        sample_indices: Optional[Sequence[int]] = None,
        figsize: Optional[Tuple[int, int]] = None,
        title: str = "Ensemble Prediction Convergence"
    ) -> plt.Figure:
        """
        앙상블 예측의 수렴 과정 시각화

        Parameters
        ----------
        model : RandomForestRegressor
            학습된 앙상블 모델 (staged_predict 사용)
        X : ndarray
            입력 데이터
        y : ndarray
            실제 타겟값
        sample_indices : list, optional
            시각화할 샘플 인덱스 (생략 시 최종 오차 분위수별 5개)
        """
        y = np.asarray(y, dtype=float)
        staged_preds = model.staged_predict(X)
        n_stages = staged_preds.shape[0]
        stages = np.arange(1, n_stages + 1)

        if sample_indices is None:
            final_errors = np.abs(staged_preds[-1] - y)
            sample_indices = sorted({
                int(np.argmin(np.abs(final_errors - np.percentile(final_errors, p))))
                for p in (0, 25, 50, 75, 100)
            })

        fig, axes = plt.subplots(2, 1, figsize=figsize or (12, 8), dpi=self.dpi)

        # 1. 개별 샘플의 예측 수렴
        ax1 = axes[0]
        colors = plt.cm.viridis(np.linspace(0, 1, len(sample_indices)))

        for color, sample_idx in zip(colors, sample_indices):
            ax1.plot(stages, staged_preds[:, sample_idx], color=color,
                     alpha=0.7, label=f'Sample {sample_idx}')
            ax1.axhline(y=y[sample_idx], color=color, linestyle='--', alpha=0.5)

        ax1.set_xlabel('Number of Estimators', fontsize=11)
        ax1.set_ylabel('Prediction', fontsize=11)
        ax1.set_title('Individual Sample Predictions', fontsize=12, fontweight='bold')
        ax1.legend(loc='upper right', fontsize=9)
        ax1.grid(True, alpha=0.3)

        # 2. 전체 MSE 수렴
        ax2 = axes[1]
        mse_history = np.mean((staged_preds - y) ** 2, axis=1)

        ax2.plot(stages, mse_history, color=self.colors['primary'], linewidth=2)
        ax2.fill_between(stages, mse_history, alpha=0.2, color=self.colors['primary'])
        ax2.set_xlabel('Number of Estimators', fontsize=11)
        ax2.set_ylabel('MSE', fontsize=11)
        ax2.set_title('Overall MSE Convergence', fontsize=12, fontweight='bold')
        ax2.grid(True, alpha=0.3)

        fig.suptitle(title, fontsize=14, fontweight='bold', y=1.02)
        plt.tight_layout()
        return fig

    def plot_clusters(
        self,
        model,
        X: np.ndarray,
        feature_indices: Tuple[int, int] = (0, 1),
        feature_names: Optional[List[str]] = None,
        figsize: Optional[Tuple[int, int]] = None,
        title: str = "K-Means Clusters"
    ) -> plt.Figure:
        """
        K-Means 군집 산점도 (두 피처 기준)

        Parameters
        ----------
        model : KMeans
            학습된 모델
        X : ndarray of shape (n_samples, n_features)
            군집을 표시할 데이터 (predict로 라벨 계산)
        feature_indices : tuple
            x축, y축으로 쓸 피처 인덱스
        """
        if model.centroids_ is None:
            raise ValueError("모델이 학습되지 않았습니다.")

        X = np.asarray(X, dtype=float)
        labels = model.predict(X)
        fx, fy = feature_indices

        fig, ax = plt.subplots(figsize=figsize or self.figsize, dpi=self.dpi)
        colors = plt.cm.tab10(np.linspace(0, 1, max(model.k, 1)))

        for cluster in range(model.k):
            members = X[labels == cluster]
            ax.scatter(members[:, fx], members[:, fy], color=colors[cluster],
                       alpha=0.6, label=f'Cluster {cluster} (n={len(members)})')

        ax.scatter(model.centroids_[:, fx], model.centroids_[:, fy],
                   marker='X', s=200, color='black', label='Centroids')

        names = feature_names or [f'Feature {i}' for i in range(X.shape[1])]
        ax.set_xlabel(names[fx], fontsize=11)
        ax.set_ylabel(names[fy], fontsize=11)
        ax.set_title(title, fontsize=14, fontweight='bold')
        ax.legend(loc='best', fontsize=9)
        ax.grid(True, alpha=0.3)

        plt.tight_layout()
        return fig

    def plot_residual_analysis(
        self,
        y_true: np.ndarray,
        y_pred: np.ndarray,
        figsize: Optional[Tuple[int, int]] = None,
        title: str = "Residual Analysis"
    ) -> plt.Figure:
        """
        잔차 분석 시각화

        Parameters
        ----------
        y_true : ndarray
            실제 값
        y_pred : ndarray
            예측 값
        """
        y_true = np.asarray(y_true, dtype=float)
        y_pred = np.asarray(y_pred, dtype=float)
        residuals = y_true - y_pred

        fig, axes = plt.subplots(2, 2, figsize=figsize or (12, 10), dpi=self.dpi)

        # 1. 잔차 vs 예측값
        ax1 = axes[0, 0]
        ax1.scatter(y_pred, residuals, alpha=0.5, color=self.colors['primary'])
        ax1.axhline(y=0, color='red', linestyle='--', linewidth=1)
        ax1.set_xlabel('Predicted Values', fontsize=10)
        ax1.set_ylabel('Residuals', fontsize=10)
        ax1.set_title('Residuals vs Predicted', fontsize=11, fontweight='bold')
        ax1.grid(True, alpha=0.3)

        # 2. 잔차 히스토그램
        ax2 = axes[0, 1]
        ax2.hist(residuals, bins=30, color=self.colors['secondary'],
                 alpha=0.7, edgecolor='white')
        ax2.axvline(x=0, color='red', linestyle='--', linewidth=1)
        ax2.axvline(x=np.mean(residuals), color='blue', linestyle='-',
                    linewidth=1, label=f'Mean: {np.mean(residuals):.2f}')
        ax2.set_xlabel('Residuals', fontsize=10)
        ax2.set_ylabel('Frequency', fontsize=10)
        ax2.set_title('Residual Distribution', fontsize=11, fontweight='bold')
        ax2.legend()
        ax2.grid(True, alpha=0.3)

        # 3. 실제 vs 예측
        ax3 = axes[1, 0]
        ax3.scatter(y_true, y_pred, alpha=0.5, color=self.colors['primary'])
        min_val = min(y_true.min(), y_pred.min())
        max_val = max(y_true.max(), y_pred.max())
        ax3.plot([min_val, max_val], [min_val, max_val], 'r--', linewidth=1)
        ax3.set_xlabel('Actual Values', fontsize=10)
        ax3.set_ylabel('Predicted Values', fontsize=10)
        ax3.set_title('Actual vs Predicted', fontsize=11, fontweight='bold')
        ax3.grid(True, alpha=0.3)

        # 4. 샘플 순서별 잔차
        ax4 = axes[1, 1]
        ax4.plot(residuals, color=self.colors['accent'], linewidth=1, marker='o', markersize=3)
        ax4.axhline(y=0, color='red', linestyle='--', linewidth=1)
        ax4.set_xlabel('Sample Index', fontsize=10)
        ax4.set_ylabel('Residual', fontsize=10)
        ax4.set_title('Residuals by Sample', fontsize=11, fontweight='bold')
        ax4.grid(True, alpha=0.3)

        stats_text = (
            f"Mean: {np.mean(residuals):.4f}\n"
            f"Std: {np.std(residuals):.4f}\n"
            f"RMSE: {calculate_rmse(y_true, y_pred):.4f}\n"
            f"MAE: {calculate_mae(y_true, y_pred):.4f}"
        )
        fig.text(0.02, 0.02, stats_text, fontsize=9, family='monospace',
                 bbox=dict(boxstyle='round', facecolor='wheat', alpha=0.5))

        fig.suptitle(title, fontsize=14, fontweight='bold', y=1.02)
        plt.tight_layout()
        return fig

    def save_figure(
        self,
        fig: plt.Figure,
        filepath: str,
        dpi: Optional[int] = None
    ):
        """Figure 저장"""
        fig.savefig(filepath, dpi=dpi or self.dpi, bbox_inches='tight',
                    facecolor='white', edgecolor='none')
        logger.info("Figure saved: %s", filepath)
