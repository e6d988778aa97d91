import httpx
import pytest

from moth_egg_detector.core.errors import MalformedResultError, ProviderError
from moth_egg_detector.providers.roboflow_provider import RoboflowProvider


def _patch_transport(monkeypatch, handler):
    transport = httpx.MockTransport(handler)

    class MockClient(httpx.Client):
        def __init__(self, *args, **kwargs):
            kwargs['transport'] = transport
            super().__init__(*args, **kwargs)

    monkeypatch.setattr(httpx, 'Client', MockClient)


def test_roboflow_provider_posts_unframed_base64_with_api_key(monkeypatch):
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen['method'] = request.method
        seen['path'] = request.url.path
        seen['api_key'] = request.url.params.get('api_key')
        seen['content_type'] = request.headers.get('content-type')
        seen['body'] = request.content
        return httpx.Response(
            200,
            json={
                'predictions': [
                    {'x': 100, 'y': 80, 'width': 40, 'height': 30, 'confidence': 0.87, 'class': 'egg'},
                ],
            },
        )

    _patch_transport(monkeypatch, handler)
    provider = RoboflowProvider(base_url='https://detect.local/', model='winter-moth-eggs-vmehu/1', api_key='secret')

    body = provider.detect('AAAA')

    assert seen['method'] == 'POST'
    assert seen['path'] == '/winter-moth-eggs-vmehu/1'
    assert seen['api_key'] == 'secret'
    assert seen['content_type'] == 'application/x-www-form-urlencoded'
    assert seen['body'] == b'AAAA'
    assert body['predictions'][0]['class'] == 'egg'
    assert provider.model_id == 'winter-moth-eggs-vmehu/1'


def test_roboflow_provider_omits_missing_api_key(monkeypatch):
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen['params'] = dict(request.url.params)
        return httpx.Response(401, json={'message': 'Unauthorized'})

    _patch_transport(monkeypatch, handler)
    provider = RoboflowProvider(base_url='https://detect.local', api_key=None)

    with pytest.raises(ProviderError) as excinfo:
        provider.detect('AAAA')

    assert seen['params'] == {}
    assert excinfo.value.code == 'PROVIDER_ERROR'
    assert excinfo.value.upstream_status == 401


def test_roboflow_provider_error_message_does_not_leak_api_key(monkeypatch):
    _patch_transport(monkeypatch, lambda request: httpx.Response(403, text='Forbidden'))
    provider = RoboflowProvider(base_url='https://detect.local', api_key='top-secret-key')

    with pytest.raises(ProviderError) as excinfo:
        provider.detect('AAAA')

    assert '403' in excinfo.value.message
    assert 'top-secret-key' not in excinfo.value.message


def test_roboflow_provider_timeout_is_transport_error(monkeypatch):
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout('timed out', request=request)

    _patch_transport(monkeypatch, handler)
    provider = RoboflowProvider(base_url='https://detect.local', api_key='secret')

    with pytest.raises(ProviderError) as excinfo:
        provider.detect('AAAA')

    assert excinfo.value.code == 'PROVIDER_UNREACHABLE'
    assert excinfo.value.message


def test_roboflow_provider_rejects_non_json_body(monkeypatch):
    _patch_transport(monkeypatch, lambda request: httpx.Response(200, text='<html>oops</html>'))
    provider = RoboflowProvider(base_url='https://detect.local', api_key='secret')

    with pytest.raises(MalformedResultError):
        provider.detect('AAAA')
