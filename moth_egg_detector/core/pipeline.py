import logging

from moth_egg_detector.core.gateway import InferenceGateway
from moth_egg_detector.core.overlay import OverlayStyle, render_overlay
from moth_egg_detector.core.postprocess import parse_predictions, summarize
from moth_egg_detector.core.types import AnnotationResult
from moth_egg_detector.utils.image_io import encode_base64, load_image_from_bytes
from moth_egg_detector.utils.timings import measure_ms

logger = logging.getLogger('moth_egg_detector.pipeline')


class AnnotationPipeline:
    """One image in, one inference call out, one render pass."""

    def __init__(self, gateway: InferenceGateway, style: OverlayStyle | None = None, max_image_bytes: int = 12 * 1024 * 1024):
        self._gateway = gateway
        self._style = style or OverlayStyle()
        self._max_image_bytes = max_image_bytes

    def run(self, image_bytes: bytes) -> AnnotationResult:
        with measure_ms() as elapsed:
            image = load_image_from_bytes(image_bytes, self._max_image_bytes)
            body = self._gateway.analyze(encode_base64(image_bytes))
            detections = parse_predictions(body)
            annotated = render_overlay(image, detections, self._style)
            summary = summarize(detections)
            latency_ms = elapsed()

        logger.info(
            'annotated model=%s size=%sx%s detections=%s latency_ms=%s',
            self._gateway.model_id,
            image.size[0],
            image.size[1],
            summary.count,
            latency_ms,
        )
        return AnnotationResult(
            detections=detections,
            summary=summary,
            annotated_image=annotated,
            raw=body,
            model_id=self._gateway.model_id,
            latency_ms=latency_ms,
            image_size=image.size,
        )
