import math
from collections import defaultdict
from typing import Any

from moth_egg_detector.core.errors import MalformedResultError
from moth_egg_detector.core.types import Detection, DetectionSummary

_REQUIRED_NUMBERS = ('confidence', 'x', 'y', 'width', 'height')


def _parse_prediction(index: int, row: Any) -> Detection:
    if not isinstance(row, dict):
        raise MalformedResultError(f'Prediction #{index} is not an object.')
    label = row.get('class')
    if not isinstance(label, str):
        raise MalformedResultError(f'Prediction #{index} has no class label.')
    numbers: dict[str, float] = {}
    for key in _REQUIRED_NUMBERS:
        value = row.get(key)
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise MalformedResultError(f'Prediction #{index} has a missing or non-numeric {key!r}.')
        if not math.isfinite(value):
            raise MalformedResultError(f'Prediction #{index} has a non-finite {key!r}.')
        numbers[key] = float(value)
    class_id = row.get('class_id')
    detection_id = row.get('detection_id')
    return Detection(
        class_name=label,
        class_id=int(class_id) if isinstance(class_id, int) and not isinstance(class_id, bool) else None,
        detection_id=str(detection_id) if detection_id is not None else None,
        **numbers,
    )


def parse_predictions(body: Any) -> list[Detection]:
    """Turn a provider body into a Detection Set, keeping provider order.

    Values are taken as reported: coordinates outside the image and
    confidences outside [0, 1] are neither clamped nor rejected.
    """
    if not isinstance(body, dict):
        raise MalformedResultError('Inference result is not a JSON object.')
    if 'error' in body and 'predictions' not in body:
        raise MalformedResultError(f"Inference provider reported an error: {body['error']}")
    predictions = body.get('predictions')
    if not isinstance(predictions, list):
        raise MalformedResultError('Inference result has no predictions list.')
    return [_parse_prediction(index, row) for index, row in enumerate(predictions)]


def detection_count(detections: list[Detection]) -> int:
    return len(detections)


def class_tally(detections: list[Detection]) -> dict[str, int]:
    counts: dict[str, int] = defaultdict(int)
    for detection in detections:
        counts[detection.class_name] += 1
    return dict(counts)


def summarize(detections: list[Detection]) -> DetectionSummary:
    return DetectionSummary(count=detection_count(detections), class_tally=class_tally(detections))
