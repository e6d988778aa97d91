from abc import ABC, abstractmethod
from typing import Any

from moth_egg_detector.config import Settings


class Detector(ABC):
    @abstractmethod
    def detect(self, image_b64: str) -> dict[str, Any]:
        """Run inference on an unframed base64 image and return the provider's JSON body."""
        raise NotImplementedError

    @property
    @abstractmethod
    def model_id(self) -> str:
        raise NotImplementedError


def create_detector(settings: Settings) -> Detector:
    provider = settings.provider.strip().lower()
    if provider == 'dummy':
        from moth_egg_detector.providers.dummy_provider import DummyProvider

        return DummyProvider(model_id='dummy-v1')
    if provider == 'roboflow':
        from moth_egg_detector.providers.roboflow_provider import RoboflowProvider

        return RoboflowProvider(
            base_url=settings.inference_base_url,
            model=settings.inference_model,
            api_key=settings.api_key.get_secret_value() if settings.api_key is not None else None,
            timeout_ms=settings.inference_timeout_ms,
        )
    raise ValueError(f'Unsupported PROVIDER={settings.provider!r}')
