import logging
import re
from typing import Any

from moth_egg_detector.core.detector import Detector
from moth_egg_detector.core.errors import GatewayError

logger = logging.getLogger('moth_egg_detector.gateway')

_DATA_URI_PREFIX = re.compile(r'^data:image/[a-z]+;base64,')


def strip_data_uri_prefix(payload: str) -> str:
    return _DATA_URI_PREFIX.sub('', payload, count=1)


class InferenceGateway:
    """Relays one image to the detection provider. Single attempt, no retry."""

    def __init__(self, detector: Detector) -> None:
        self._detector = detector

    @property
    def model_id(self) -> str:
        return self._detector.model_id

    def analyze(self, image: Any) -> dict[str, Any]:
        if not isinstance(image, str) or not image.strip():
            raise GatewayError('MISSING_IMAGE', 'Missing image payload (field name: image).', status_code=400)
        return self._detector.detect(strip_data_uri_prefix(image.strip()))

    def handle(self, image: Any) -> tuple[int, dict[str, Any]]:
        try:
            return 200, self.analyze(image)
        except GatewayError as exc:
            logger.warning('inference failed code=%s message=%s', exc.code, exc.message)
            return 500, {'error': exc.message, 'code': exc.code}
        except Exception as exc:
            logger.exception('inference failed unexpectedly')
            return 500, {'error': str(exc) or exc.__class__.__name__, 'code': 'UNEXPECTED_SERVER_ERROR'}
