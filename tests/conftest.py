from __future__ import annotations

import pytest
from PIL import Image

from api.settings import Settings


@pytest.fixture
def settings(tmp_path):
    return Settings(
        DETECTION_SERVICE_URL="http://detector:8000/detect",
        EMBEDDING_SERVICE_URL="http://embedder:8000/extract",
        SEARCH_SERVICE_URL="http://search:8000/search",
        UPLOAD_DIR=str(tmp_path / "uploads"),
        PUBLIC_DIR=str(tmp_path / "public"),
        CATALOGUE_DIR=str(tmp_path / "catalogue"),
        CLEANUP_DELAY=0.0,
    )


@pytest.fixture
def make_image(tmp_path):
    def _make(size=(100, 100), name="upload.png", color=(255, 0, 0)):
        path = tmp_path / name
        Image.new("RGB", size, color).save(path)
        return str(path)

    return _make
