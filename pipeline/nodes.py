from __future__ import annotations

import logging
import os
from typing import Any, Dict, Optional

from pipeline.errors import ConfigurationError, FeatureExtractionError, RelayError
from pipeline.schemas import DetectionResult, EmbeddingResult, SearchResult, parse_upstream
from pipeline.state import RelayState
from pipeline.tools import request_detection, request_embedding, request_similar
from utils.images import resize_image
from utils.regions import RegionDescriptor, extract_region

log = logging.getLogger(__name__)

MATCH_MESSAGE = "Similar designs found!"


def _failure(e: RelayError) -> Dict[str, Any]:
    return {"error": str(e), "status_code": e.status_code}


def _require(url: Optional[str], name: str) -> str:
    if not url:
        raise ConfigurationError(f"{name} environment variable is not set")
    return url


class RelayNodes:
    """
    LangGraph node callables for the detect and match pipelines.

    Each node returns a partial state update. A RelayError raised inside a
    node is logged and recorded as `error`/`status_code`; the graph then
    routes straight to `respond`.
    """

    def __init__(self, settings):
        self.settings = settings

    def public_url(self, path: str) -> str:
        return f"{self.settings.UPLOADS_URL.rstrip('/')}/{os.path.basename(path)}"

    # --- detect pipeline ---

    def prepare_upload(self, state: RelayState) -> Dict[str, Any]:
        """Optionally resize the upload to the detection service's input size."""
        image_path = state["image_path"]
        size = self.settings.DETECTION_RESIZE
        if not size:
            return {"region_path": image_path}

        try:
            resized = resize_image(image_path, size)
        except RelayError as e:
            log.error("[RESIZE] %s", e)
            return _failure(e)

        return {"region_path": resized, "temp_files": [resized]}

    def detect(self, state: RelayState) -> Dict[str, Any]:
        """Node wrapper around the detection service call."""
        image_path = state["region_path"]
        log.info("[DETECT] image_path='%s'", image_path)

        try:
            url = _require(self.settings.DETECTION_SERVICE_URL, "DETECTION_SERVICE_URL")
            payload = request_detection.invoke(
                {
                    "image_path": image_path,
                    "service_url": url,
                    "timeout": self.settings.DETECTION_TIMEOUT,
                }
            )
            result = parse_upstream(DetectionResult, payload, "Detection")
        except RelayError as e:
            log.error("[DETECT] %s", e)
            return _failure(e)

        if isinstance(result.polygons, list):
            log.info("[DETECT] %d polygons", len(result.polygons))
        return {"polygons": result.polygons, "error": None}

    def respond_detection(self, state: RelayState) -> Dict[str, Any]:
        if state.get("error"):
            return {"response": None}
        return {
            "response": {
                "imageUrl": self.public_url(state["region_path"]),
                "polygons": state.get("polygons"),
            }
        }

    # --- match pipeline ---

    def extract(self, state: RelayState) -> Dict[str, Any]:
        """Cut the caller's region out of the upload."""
        image_path = state["image_path"]
        region = state.get("region") or RegionDescriptor()
        log.info("[EXTRACT] image_path='%s', kind=%s", image_path, region.kind)

        try:
            region_path = extract_region(image_path, region)
        except RelayError as e:
            log.error("[EXTRACT] %s", e)
            return _failure(e)

        written = [] if region_path == image_path else [region_path]
        return {"region_path": region_path, "temp_files": written}

    def embed(self, state: RelayState) -> Dict[str, Any]:
        """Node wrapper around the embedding service call."""
        region_path = state["region_path"]
        log.info("[EMBED] image_path='%s'", region_path)

        try:
            url = _require(self.settings.EMBEDDING_SERVICE_URL, "EMBEDDING_SERVICE_URL")
            payload = request_embedding.invoke(
                {
                    "image_path": region_path,
                    "service_url": url,
                    "timeout": self.settings.SERVICE_TIMEOUT,
                }
            )
            result = parse_upstream(EmbeddingResult, payload, "Embedding")
            if result.features is None:
                raise FeatureExtractionError("Failed to extract features")
        except RelayError as e:
            log.error("[EMBED] %s", e)
            return _failure(e)

        log.info("[EMBED] %d-dim vector", len(result.features))
        return {"features": result.features, "error": None}

    def search(self, state: RelayState) -> Dict[str, Any]:
        """Node wrapper around the similarity-search call; keeps the top matches."""
        try:
            url = _require(self.settings.SEARCH_SERVICE_URL, "SEARCH_SERVICE_URL")
            payload = request_similar.invoke(
                {
                    "features": state["features"],
                    "service_url": url,
                    "timeout": self.settings.SERVICE_TIMEOUT,
                }
            )
            result = parse_upstream(SearchResult, payload, "Search")
        except RelayError as e:
            log.error("[SEARCH] %s", e)
            return _failure(e)

        results = result.results or []
        matches = results[: self.settings.MAX_MATCHES]
        log.info("[SEARCH] kept %d/%d", len(matches), len(results))
        return {"matches": matches}

    def respond_matches(self, state: RelayState) -> Dict[str, Any]:
        if state.get("error"):
            return {"response": None}
        return {
            "response": {
                "imageUrl": self.public_url(state["region_path"]),
                "message": MATCH_MESSAGE,
                "features": state["features"],
                "similarDesigns": state.get("matches") or [],
            }
        }
