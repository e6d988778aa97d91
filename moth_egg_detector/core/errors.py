class GatewayError(Exception):
    def __init__(self, code: str, message: str, status_code: int = 400, details: dict | None = None):
        super().__init__(message)
        self.code = code
        self.message = message
        self.status_code = status_code
        self.details = details or {}


class ImageDecodeError(GatewayError):
    def __init__(self, message: str = 'Could not decode image.'):
        super().__init__('IMAGE_DECODE_FAILED', message, status_code=400)


class ProviderError(GatewayError):
    """The inference provider was unreachable or answered with a non-2xx status."""

    def __init__(self, code: str, message: str, upstream_status: int | None = None):
        super().__init__(code, message, status_code=502, details={'upstream_status': upstream_status})
        self.upstream_status = upstream_status


class MalformedResultError(GatewayError):
    def __init__(self, message: str):
        super().__init__('MALFORMED_RESULT', message, status_code=502)
