import logging
import time
import uuid
from pathlib import Path

from fastapi import FastAPI, File, Request, UploadFile
from fastapi.exceptions import RequestValidationError
from fastapi.responses import FileResponse, JSONResponse
from fastapi.staticfiles import StaticFiles
from starlette.concurrency import run_in_threadpool

from moth_egg_detector.config import get_settings
from moth_egg_detector.core.detector import create_detector
from moth_egg_detector.core.errors import GatewayError
from moth_egg_detector.core.gateway import InferenceGateway
from moth_egg_detector.core.overlay import OverlayStyle
from moth_egg_detector.core.pipeline import AnnotationPipeline
from moth_egg_detector.core.session import AnalysisSession
from moth_egg_detector.logging_setup import setup_logging
from moth_egg_detector.schemas import (
    AnalyzeRequest,
    AnnotateResponse,
    ErrorResponse,
    HealthResponse,
    PredictionOut,
)
from moth_egg_detector.utils.image_io import to_data_uri

settings = get_settings()
setup_logging(settings.log_level)
logger = logging.getLogger('moth_egg_detector')

STATIC_DIR = Path(__file__).resolve().parent / 'static'

app = FastAPI(title='Winter Moth Egg Detector', version=settings.version)
app.mount('/static', StaticFiles(directory=STATIC_DIR), name='static')
started_at = time.time()


def _request_id(request: Request) -> str:
    return request.headers.get('x-request-id') or str(uuid.uuid4())


def _error_response(request_id: str, status_code: int, code: str, message: str) -> JSONResponse:
    payload = ErrorResponse(error=message, code=code, request_id=request_id)
    return JSONResponse(status_code=status_code, content=payload.model_dump())


@app.on_event('startup')
def startup_event() -> None:
    detector = create_detector(settings)
    app.state.detector = detector
    app.state.overlay_style = OverlayStyle(
        color=settings.box_color,
        stroke_width=settings.box_width,
        font_size=settings.label_font_size,
        label_margin=settings.label_margin,
        font_path=settings.font_path,
    )
    logger.info(
        'Detector initialized provider=%s model=%s api_key_configured=%s timeout_ms=%s',
        settings.provider,
        detector.model_id,
        settings.api_key is not None,
        settings.inference_timeout_ms,
    )
    if settings.provider.strip().lower() == 'roboflow' and settings.api_key is None:
        logger.warning('API_KEY is not set; the inference provider will reject requests.')


@app.exception_handler(GatewayError)
async def gateway_error_handler(request: Request, exc: GatewayError):
    request_id = _request_id(request)
    logger.warning('request failed request_id=%s code=%s message=%s', request_id, exc.code, exc.message)
    return _error_response(request_id, exc.status_code, exc.code, exc.message)


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    detail = errors[0].get('msg', 'invalid body') if errors else 'invalid body'
    return _error_response(_request_id(request), 500, 'INVALID_REQUEST', f'Invalid request: {detail}')


@app.exception_handler(Exception)
async def generic_error_handler(request: Request, exc: Exception):
    request_id = _request_id(request)
    logger.exception('Unhandled exception request_id=%s', request_id)
    return _error_response(request_id, 500, 'UNEXPECTED_SERVER_ERROR', 'Unexpected server error.')


@app.get('/', include_in_schema=False)
def index():
    return FileResponse(STATIC_DIR / 'index.html')


@app.get('/health', response_model=HealthResponse)
def health():
    detector = app.state.detector
    return HealthResponse(
        ok=True,
        version=settings.version,
        provider=settings.provider,
        model=getattr(detector, 'model_id', None),
        api_key_configured=settings.api_key is not None,
        uptime_s=round(time.time() - started_at, 3),
    )


@app.post('/api/analyze')
def analyze(request: Request, payload: AnalyzeRequest):
    request_id = _request_id(request)
    gateway = InferenceGateway(app.state.detector)
    status_code, body = gateway.handle(payload.image)
    if status_code != 200:
        return _error_response(request_id, status_code, body.get('code', 'INFERENCE_FAILED'), body['error'])
    logger.info(
        'analyze request_id=%s predictions=%s',
        request_id,
        len(body.get('predictions') or []) if isinstance(body, dict) else 0,
    )
    return JSONResponse(status_code=200, content=body)


@app.post('/api/annotate', response_model=AnnotateResponse)
async def annotate(request: Request, image: UploadFile | None = File(default=None)):
    request_id = _request_id(request)
    image_bytes = await image.read() if image is not None else b''

    pipeline = AnnotationPipeline(
        InferenceGateway(app.state.detector),
        style=app.state.overlay_style,
        max_image_bytes=settings.max_image_bytes,
    )
    session = AnalysisSession()
    session.select_image(image_bytes)
    result = await run_in_threadpool(session.analyze, pipeline)
    if result is None:
        raise session.error

    width, height = result.image_size
    response = AnnotateResponse(
        model=result.model_id,
        latency_ms=result.latency_ms,
        width=width,
        height=height,
        count=result.summary.count,
        class_tally=result.summary.class_tally,
        detections=[
            PredictionOut(
                class_name=d.class_name,
                confidence=d.confidence,
                x=d.x,
                y=d.y,
                width=d.width,
                height=d.height,
                class_id=d.class_id,
                detection_id=d.detection_id,
            )
            for d in result.detections
        ],
        annotated_image=to_data_uri(result.annotated_image),
        raw=result.raw,
    )
    logger.info(
        'annotate request_id=%s bytes=%s detections=%s tally=%s',
        request_id,
        len(image_bytes),
        result.summary.count,
        result.summary.class_tally,
    )
    return response


if __name__ == '__main__':
    import uvicorn

    uvicorn.run(app, host=settings.host, port=settings.port, log_level=settings.log_level.lower())
