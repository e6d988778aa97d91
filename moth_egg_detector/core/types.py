from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class Detection:
    # (x, y) is the box center, as reported by the provider.
    class_name: str
    confidence: float
    x: float
    y: float
    width: float
    height: float
    class_id: int | None = None
    detection_id: str | None = None


@dataclass
class DetectionSummary:
    count: int
    class_tally: dict[str, int]


@dataclass
class AnnotationResult:
    detections: list[Detection]
    summary: DetectionSummary
    annotated_image: Any
    raw: dict[str, Any]
    model_id: str
    latency_ms: int
    image_size: tuple[int, int] = (0, 0)
