import enum
import logging
from contextlib import contextmanager
from typing import Callable, Iterable, Iterator, Protocol

from moth_egg_detector.core.errors import GatewayError
from moth_egg_detector.core.pipeline import AnnotationPipeline
from moth_egg_detector.core.types import AnnotationResult

logger = logging.getLogger('moth_egg_detector.session')


class SessionState(str, enum.Enum):
    IDLE = 'idle'
    CAPTURING = 'capturing'
    UPLOADING = 'uploading'
    SHOWING_RESULT = 'showing_result'
    ERROR = 'error'


_SETTLED = {SessionState.IDLE, SessionState.SHOWING_RESULT, SessionState.ERROR}


class SessionStateError(RuntimeError):
    pass


class CaptureCancelled(Exception):
    pass


class MediaTrack(Protocol):
    def stop(self) -> None: ...


class MediaStream(Protocol):
    def get_tracks(self) -> Iterable[MediaTrack]: ...


@contextmanager
def camera_stream(open_stream: Callable[[], MediaStream]) -> Iterator[MediaStream]:
    """Acquire a camera stream and stop all of its tracks on every exit path."""
    stream = open_stream()
    try:
        yield stream
    finally:
        first_error: Exception | None = None
        for track in stream.get_tracks():
            try:
                track.stop()
            except Exception as exc:
                logger.warning('camera track failed to stop error=%s', exc)
                if first_error is None:
                    first_error = exc
        if first_error is not None:
            raise first_error


class AnalysisSession:
    """State of one user interaction: pick or capture an image, analyze it, show the outcome."""

    def __init__(self) -> None:
        self.state = SessionState.IDLE
        self.selected_image: bytes | None = None
        self.result: AnnotationResult | None = None
        self.error: GatewayError | None = None
        self.error_message: str | None = None

    def _require(self, allowed: set[SessionState], action: str) -> None:
        if self.state not in allowed:
            raise SessionStateError(f'Cannot {action} while {self.state.value}.')

    def _fail(self, message: str, error: GatewayError | None = None) -> None:
        self.state = SessionState.ERROR
        self.error = error
        self.error_message = message

    def select_image(self, image_bytes: bytes) -> None:
        self._require(_SETTLED | {SessionState.CAPTURING}, 'select an image')
        self.selected_image = image_bytes
        self.result = None
        self.error = None
        self.error_message = None
        self.state = SessionState.IDLE

    def capture(self, open_stream: Callable[[], MediaStream], grab_frame: Callable[[MediaStream], bytes]) -> bool:
        self._require(_SETTLED, 'start capturing')
        self.state = SessionState.CAPTURING
        try:
            with camera_stream(open_stream) as stream:
                frame = grab_frame(stream)
        except CaptureCancelled:
            self.state = SessionState.IDLE
            return False
        except Exception as exc:
            logger.warning('camera capture failed error=%s', exc)
            self._fail(f'Camera capture failed: {exc}')
            return False

        if not frame:
            self.state = SessionState.IDLE
            return False
        self.select_image(frame)
        return True

    def analyze(self, pipeline: AnnotationPipeline) -> AnnotationResult | None:
        self._require(_SETTLED, 'analyze')
        if self.selected_image is None:
            raise SessionStateError('No image selected.')

        self.state = SessionState.UPLOADING
        self.result = None
        try:
            result = pipeline.run(self.selected_image)
        except GatewayError as exc:
            self._fail(exc.message, exc)
            return None
        except Exception:
            self._fail('Failed to analyze image')
            raise

        self.result = result
        self.error = None
        self.error_message = None
        self.state = SessionState.SHOWING_RESULT
        return result
