import logging
from typing import Any

import httpx

from moth_egg_detector.core.detector import Detector
from moth_egg_detector.core.errors import MalformedResultError, ProviderError

logger = logging.getLogger('moth_egg_detector.providers.roboflow')


def _join_url(base_url: str, path: str) -> str:
    return f"{base_url.rstrip('/')}/{path.lstrip('/')}"


class RoboflowProvider(Detector):
    """Hosted object detection over Roboflow's serverless inference API.

    The image travels as the raw request body (unframed base64) with a
    form-urlencoded content type; the api key goes in the query string.
    """

    def __init__(
        self,
        base_url: str = 'https://serverless.roboflow.com',
        model: str = 'winter-moth-eggs-vmehu/1',
        api_key: str | None = None,
        timeout_ms: int = 30000,
    ) -> None:
        self._base_url = base_url
        self._model = model
        self._api_key = api_key
        self._timeout = max(int(timeout_ms), 1000) / 1000.0

    @property
    def model_id(self) -> str:
        return self._model

    def detect(self, image_b64: str) -> dict[str, Any]:
        params = {'api_key': self._api_key} if self._api_key else {}
        try:
            with httpx.Client(timeout=self._timeout) as client:
                response = client.post(
                    _join_url(self._base_url, self._model),
                    params=params,
                    content=image_b64,
                    headers={'Content-Type': 'application/x-www-form-urlencoded'},
                )
        except httpx.TimeoutException as exc:
            raise ProviderError('PROVIDER_UNREACHABLE', 'Inference provider timed out.') from exc
        except httpx.RequestError as exc:
            # str(exc) is the transport reason only; the URL (and key) stays out of the message.
            raise ProviderError('PROVIDER_UNREACHABLE', f'Could not reach inference provider: {exc}') from exc

        if response.is_error:
            raise ProviderError(
                'PROVIDER_ERROR',
                f'Inference provider returned status {response.status_code}.',
                upstream_status=response.status_code,
            )

        try:
            body = response.json()
        except ValueError as exc:
            raise MalformedResultError('Inference provider returned a non-JSON body.') from exc
        if not isinstance(body, dict):
            raise MalformedResultError('Inference provider returned an unexpected JSON shape.')

        logger.debug('provider response model=%s predictions=%s', self._model, len(body.get('predictions') or []))
        return body
