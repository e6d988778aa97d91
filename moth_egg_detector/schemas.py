from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class AnalyzeRequest(BaseModel):
    image: str | None = None


class PredictionOut(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    class_name: str = Field(alias='class', serialization_alias='class')
    confidence: float
    x: float
    y: float
    width: float
    height: float
    class_id: int | None = None
    detection_id: str | None = None


class AnnotateResponse(BaseModel):
    ok: bool = True
    model: str
    latency_ms: int
    width: int
    height: int
    count: int
    class_tally: dict[str, int]
    detections: list[PredictionOut]
    annotated_image: str
    raw: dict[str, Any]


class HealthResponse(BaseModel):
    ok: bool
    version: str
    provider: str
    model: str | None = None
    api_key_configured: bool
    uptime_s: float


class ErrorResponse(BaseModel):
    ok: bool = False
    error: str
    code: str
    request_id: str | None = None
