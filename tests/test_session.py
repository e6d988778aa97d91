from io import BytesIO

import pytest
from PIL import Image

from moth_egg_detector.core.errors import ProviderError
from moth_egg_detector.core.gateway import InferenceGateway
from moth_egg_detector.core.pipeline import AnnotationPipeline
from moth_egg_detector.core.session import (
    AnalysisSession,
    CaptureCancelled,
    SessionState,
    SessionStateError,
    camera_stream,
)
from moth_egg_detector.providers.dummy_provider import DummyProvider


def make_png_bytes(size=(400, 300)) -> bytes:
    buf = BytesIO()
    Image.new('RGB', size, color='white').save(buf, format='PNG')
    return buf.getvalue()


class FakeTrack:
    def __init__(self):
        self.stopped = False

    def stop(self):
        self.stopped = True


class FakeStream:
    def __init__(self, track_count: int = 2):
        self.tracks = [FakeTrack() for _ in range(track_count)]

    def get_tracks(self):
        return list(self.tracks)


class StuckTrack(FakeTrack):
    def stop(self):
        raise RuntimeError('track busy')


class FailingPipeline:
    def run(self, image_bytes):
        raise ProviderError('PROVIDER_UNREACHABLE', 'Inference provider timed out.')


class CrashingPipeline:
    def run(self, image_bytes):
        raise RuntimeError('boom')


def _pipeline() -> AnnotationPipeline:
    return AnnotationPipeline(InferenceGateway(DummyProvider()))


def test_new_session_is_idle():
    session = AnalysisSession()

    assert session.state is SessionState.IDLE
    assert session.selected_image is None


def test_analyze_moves_to_showing_result():
    session = AnalysisSession()
    session.select_image(make_png_bytes())

    result = session.analyze(_pipeline())

    assert session.state is SessionState.SHOWING_RESULT
    assert session.result is result
    assert result.summary.count == 2
    assert result.summary.class_tally == {'egg': 2}
    assert result.annotated_image.size == (400, 300)


def test_analyze_failure_moves_to_error_with_message():
    session = AnalysisSession()
    session.select_image(make_png_bytes())

    result = session.analyze(FailingPipeline())

    assert result is None
    assert session.state is SessionState.ERROR
    assert session.error_message == 'Inference provider timed out.'
    assert session.error.code == 'PROVIDER_UNREACHABLE'


def test_undecodable_image_moves_to_error():
    session = AnalysisSession()
    session.select_image(b'not an image')

    session.analyze(_pipeline())

    assert session.state is SessionState.ERROR
    assert session.error.code == 'IMAGE_DECODE_FAILED'


def test_unexpected_pipeline_crash_is_recorded_then_raised():
    session = AnalysisSession()
    session.select_image(make_png_bytes())

    with pytest.raises(RuntimeError):
        session.analyze(CrashingPipeline())

    assert session.state is SessionState.ERROR


def test_analyze_without_selection_is_rejected():
    with pytest.raises(SessionStateError):
        AnalysisSession().analyze(_pipeline())


def test_selecting_new_image_clears_previous_result():
    session = AnalysisSession()
    session.select_image(make_png_bytes())
    session.analyze(_pipeline())

    session.select_image(make_png_bytes((10, 10)))

    assert session.state is SessionState.IDLE
    assert session.result is None


def test_analyze_while_uploading_is_rejected():
    session = AnalysisSession()
    session.select_image(make_png_bytes())
    session.state = SessionState.UPLOADING

    with pytest.raises(SessionStateError):
        session.analyze(_pipeline())


def test_camera_stream_stops_tracks_on_error():
    stream = FakeStream()

    with pytest.raises(ValueError):
        with camera_stream(lambda: stream):
            raise ValueError('frame grab failed')

    assert all(track.stopped for track in stream.tracks)


def test_capture_selects_frame_and_releases_camera():
    stream = FakeStream()
    session = AnalysisSession()
    frame = make_png_bytes()

    captured = session.capture(lambda: stream, lambda _stream: frame)

    assert captured is True
    assert session.state is SessionState.IDLE
    assert session.selected_image == frame
    assert all(track.stopped for track in stream.tracks)


def test_capture_cancel_returns_to_idle_and_releases_camera():
    stream = FakeStream()
    session = AnalysisSession()

    def cancel(_stream):
        raise CaptureCancelled()

    captured = session.capture(lambda: stream, cancel)

    assert captured is False
    assert session.state is SessionState.IDLE
    assert all(track.stopped for track in stream.tracks)


def test_capture_failure_moves_to_error_and_releases_camera():
    stream = FakeStream()
    session = AnalysisSession()

    def broken(_stream):
        raise OSError('device busy')

    captured = session.capture(lambda: stream, broken)

    assert captured is False
    assert session.state is SessionState.ERROR
    assert 'device busy' in session.error_message
    assert all(track.stopped for track in stream.tracks)


def test_camera_stream_stops_remaining_tracks_when_one_fails():
    stream = FakeStream(track_count=0)
    stream.tracks = [StuckTrack(), FakeTrack()]

    with pytest.raises(RuntimeError, match='track busy'):
        with camera_stream(lambda: stream):
            pass

    assert stream.tracks[1].stopped is True


def test_capture_with_failing_track_release_moves_to_error():
    stream = FakeStream(track_count=0)
    stream.tracks = [StuckTrack(), FakeTrack()]
    session = AnalysisSession()

    captured = session.capture(lambda: stream, lambda _stream: make_png_bytes())

    assert captured is False
    assert session.state is SessionState.ERROR
    assert 'track busy' in session.error_message
    assert stream.tracks[1].stopped is True
