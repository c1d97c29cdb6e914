"""FastAPI layer for the image relay."""

from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter, FastAPI, File, Form, HTTPException, Request, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from api.schemas import MatchResponse, StatusResponse, UploadResponse
from api.settings import Settings
from pipeline.errors import RelayError
from pipeline.graph import build_detect_graph, build_match_graph
from pipeline.state import RelayState
from utils.cleanup import CleanupScheduler
from utils.files import save_upload
from utils.regions import RegionDescriptor

logging.basicConfig(level=logging.INFO)
log = logging.getLogger(__name__)

router = APIRouter()
diagnostics = APIRouter()


def _http_error(e: RelayError) -> HTTPException:
    return HTTPException(status_code=e.status_code, detail=str(e))


def _run(request: Request, name: str, state: RelayState) -> dict:
    """
    Invoke a pipeline graph and schedule cleanup of every file it wrote.

    Cleanup is scheduled whether or not the pipeline succeeded. The graph is
    streamed state by state so files recorded by finished nodes are still
    known when a later node raises.
    """
    result: dict = dict(state)
    try:
        for result in request.app.state.graphs[name].stream(state, stream_mode="values"):
            pass
    finally:
        request.app.state.cleanup.schedule(*(result.get("temp_files") or state["temp_files"]))

    if result.get("error"):
        raise HTTPException(status_code=result.get("status_code") or 500, detail=result["error"])
    return result["response"]


@router.get("/test", response_model=StatusResponse)
def test(request: Request):
    """
    Diagnostic endpoint listing the relay routes.
    """
    prefix = request.app.state.settings.API_PREFIX.rstrip("/")
    return StatusResponse(
        message="Server is working!",
        timestamp=datetime.now(timezone.utc).isoformat(),
        endpoints=[f"{prefix}/upload-image", f"{prefix}/generate-jersey", f"{prefix}/test"],
    )


@router.post("/upload-image", response_model=UploadResponse)
def upload_image(request: Request, image: Optional[UploadFile] = File(None)):
    """
    Store an uploaded image and return the detection service's polygons.
    """
    try:
        image_path = save_upload(image, request.app.state.settings.UPLOAD_DIR)
    except RelayError as e:
        raise _http_error(e)

    return _run(request, "detect", {"image_path": image_path, "temp_files": [image_path]})


@router.post("/generate-jersey", response_model=MatchResponse)
def generate_jersey(
    request: Request,
    image: Optional[UploadFile] = File(None),
    area: Optional[str] = Form(None),
    isPolygon: Optional[str] = Form(None),
):
    """
    Crop the uploaded image to the requested region, embed it and return
    the most similar catalogue designs.
    """
    try:
        image_path = save_upload(image, request.app.state.settings.UPLOAD_DIR)
    except RelayError as e:
        raise _http_error(e)

    try:
        region = RegionDescriptor.from_form(area, isPolygon)
    except RelayError as e:
        request.app.state.cleanup.schedule(image_path)
        raise _http_error(e)

    return _run(
        request,
        "match",
        {"image_path": image_path, "region": region, "temp_files": [image_path]},
    )


@diagnostics.get("/graph/mermaid")
def graph_mermaid(request: Request, name: str = "match"):
    """
    Return Mermaid source for visualizing a pipeline graph.
    """
    graph = request.app.state.graphs.get(name)
    if graph is None:
        raise HTTPException(status_code=404, detail=f"Unknown graph '{name}'")
    return {"mermaid": graph.get_graph().draw_mermaid()}


@diagnostics.get("/health")
def health():
    """
    Basic health check.
    """
    return {"status": "ok"}


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings: Settings = app.state.settings
    for directory in (settings.UPLOAD_DIR, settings.PUBLIC_DIR, settings.CATALOGUE_DIR):
        os.makedirs(directory, exist_ok=True)
    log.info("Serving uploads from %s, services: detect=%s embed=%s search=%s",
             settings.UPLOAD_DIR, settings.DETECTION_SERVICE_URL,
             settings.EMBEDDING_SERVICE_URL, settings.SEARCH_SERVICE_URL)
    yield
    # Delete whatever is still pending before exit
    app.state.cleanup.flush()


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or Settings()
    logging.getLogger().setLevel(settings.LOG_LEVEL.upper())

    app = FastAPI(
        title="Image Relay",
        version="1.0.0",
        description="Region cropping in front of detection, embedding and similarity-search services.",
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.cleanup = CleanupScheduler(settings.CLEANUP_DELAY)
    app.state.graphs = {
        "detect": build_detect_graph(settings),
        "match": build_match_graph(settings),
    }

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.origins or ["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(router, prefix=settings.API_PREFIX.rstrip("/"))
    app.include_router(diagnostics)

    # Static files last so the mount at "/" never shadows an API route
    app.mount(settings.UPLOADS_URL, StaticFiles(directory=settings.UPLOAD_DIR, check_dir=False), name="uploads")
    app.mount("/catalogue", StaticFiles(directory=settings.CATALOGUE_DIR, check_dir=False), name="catalogue")
    app.mount("/", StaticFiles(directory=settings.PUBLIC_DIR, check_dir=False), name="public")

    return app


app = create_app()
