import operator
from typing import Annotated, Any, Dict, List, Optional, TypedDict

from utils.regions import RegionDescriptor


class RelayState(TypedDict, total=False):
    """
    Shared state passed between LangGraph nodes of both relay pipelines.
    """

    image_path: str  # saved upload
    region: RegionDescriptor  # match pipeline only

    # Image actually sent downstream (resized upload or extracted region)
    region_path: Optional[str]

    # Every file written for this request, upload first; appended by nodes
    temp_files: Annotated[List[str], operator.add]

    # Outputs from the detection service
    polygons: Optional[Any]

    # Outputs from the embedding service
    features: Optional[List[float]]

    # Outputs from the similarity-search service, already truncated
    matches: Optional[List[Any]]

    # JSON body returned to the caller
    response: Optional[Dict[str, Any]]

    # Error/debugging info
    error: Optional[str]
    status_code: Optional[int]
