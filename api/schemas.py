from typing import Any, List

from pydantic import BaseModel


class UploadResponse(BaseModel):
    imageUrl: str
    polygons: Any = None


class MatchResponse(BaseModel):
    imageUrl: str
    message: str
    features: List[float]
    similarDesigns: List[Any]


class StatusResponse(BaseModel):
    message: str
    timestamp: str
    endpoints: List[str]
