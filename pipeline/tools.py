from __future__ import annotations

import mimetypes
import os
from typing import Any, Dict, List

import requests
from langchain_core.tools import tool

from pipeline.errors import UpstreamServiceError


def _read_json(response: requests.Response, service: str) -> Dict[str, Any]:
    try:
        response.raise_for_status()
        return response.json()
    except requests.HTTPError as e:
        raise UpstreamServiceError(f"{service} service returned {response.status_code}") from e
    except ValueError as e:
        raise UpstreamServiceError(f"{service} service returned invalid JSON") from e


def _post_image(service: str, service_url: str, image_path: str, timeout: float) -> Dict[str, Any]:
    mime = mimetypes.guess_type(image_path)[0] or "application/octet-stream"
    try:
        with open(image_path, "rb") as f:
            response = requests.post(
                service_url,
                files={"file": (os.path.basename(image_path), f, mime)},
                timeout=timeout,
            )
    except requests.RequestException as e:
        raise UpstreamServiceError(f"{service} service unreachable: {e}") from e

    return _read_json(response, service)


@tool
def request_detection(
    image_path: str,
    service_url: str,
    timeout: float = 30.0,
) -> Dict[str, Any]:
    """
    Sends an image to the detection service.

    Args:
        image_path: Path to the image to upload as multipart field `file`.
        service_url: Detection endpoint.
        timeout: Seconds to wait for the response.

    Returns:
        The decoded JSON body, expected to carry a `polygons` key.
    """
    return _post_image("Detection", service_url, image_path, timeout)


@tool
def request_embedding(
    image_path: str,
    service_url: str,
    timeout: float = 30.0,
) -> Dict[str, Any]:
    """
    Sends an image to the embedding service.

    Args:
        image_path: Path to the image to upload as multipart field `file`.
        service_url: Embedding endpoint.
        timeout: Seconds to wait for the response.

    Returns:
        The decoded JSON body, expected to carry a `features` vector.
    """
    return _post_image("Embedding", service_url, image_path, timeout)


@tool
def request_similar(
    features: List[float],
    service_url: str,
    timeout: float = 30.0,
) -> Dict[str, Any]:
    """
    Looks up nearest neighbours of a feature vector.

    Args:
        features: Vector returned by the embedding service.
        service_url: Similarity-search endpoint.
        timeout: Seconds to wait for the response.

    Returns:
        The decoded JSON body, expected to carry a `results` list.
    """
    try:
        response = requests.post(service_url, json={"features": features}, timeout=timeout)
    except requests.RequestException as e:
        raise UpstreamServiceError(f"Search service unreachable: {e}") from e

    return _read_json(response, "Search")
