"""
ML Engine 예외 정의

Author: ML Engine Project
"""


class NotFittedError(RuntimeError):
    """fit() 호출 전에 예측/조회 메서드를 사용했을 때 발생"""

    def __init__(self, model_name: str):
        self.model_name = model_name
        super().__init__(
            f"{model_name} 모델이 학습되지 않았습니다. fit()을 먼저 호출하세요."
        )
