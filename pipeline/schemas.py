"""Typed views over the JSON bodies returned by the external services."""

from typing import Any, List, Optional, Type, TypeVar

from pydantic import BaseModel, ValidationError

from pipeline.errors import UpstreamServiceError

M = TypeVar("M", bound=BaseModel)


class DetectionResult(BaseModel):
    polygons: Optional[Any] = None


class EmbeddingResult(BaseModel):
    features: Optional[List[float]] = None


class SearchResult(BaseModel):
    results: Optional[List[Any]] = None


def parse_upstream(model: Type[M], payload: Any, service: str) -> M:
    """Validate a service payload, failing fast on an unexpected shape."""
    try:
        return model.model_validate(payload)
    except ValidationError as e:
        raise UpstreamServiceError(f"{service} service returned an unexpected body: {e}") from e
