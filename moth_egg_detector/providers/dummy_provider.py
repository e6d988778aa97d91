from typing import Any

from moth_egg_detector.core.detector import Detector


class DummyProvider(Detector):
    def __init__(self, model_id: str = 'dummy-v1', predictions: list[dict[str, Any]] | None = None) -> None:
        self._model_id = model_id
        self._predictions = predictions if predictions is not None else [
            {'x': 100.0, 'y': 80.0, 'width': 40.0, 'height': 30.0, 'confidence': 0.87, 'class': 'egg', 'class_id': 0},
            {'x': 160.0, 'y': 120.0, 'width': 36.0, 'height': 28.0, 'confidence': 0.64, 'class': 'egg', 'class_id': 0},
        ]

    @property
    def model_id(self) -> str:
        return self._model_id

    def detect(self, image_b64: str) -> dict[str, Any]:
        return {
            'inference_id': 'dummy',
            'time': 0.0,
            'predictions': [dict(row) for row in self._predictions],
        }
