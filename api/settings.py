from typing import List, Optional

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # External services; the FASTAPI_* names are what the existing deployments export
    DETECTION_SERVICE_URL: Optional[str] = Field(
        None, validation_alias=AliasChoices("DETECTION_SERVICE_URL", "FASTAPI_YOLO_URL")
    )
    EMBEDDING_SERVICE_URL: Optional[str] = Field(
        None, validation_alias=AliasChoices("EMBEDDING_SERVICE_URL", "FASTAPI_DINO_URL")
    )
    SEARCH_SERVICE_URL: Optional[str] = Field(
        None, validation_alias=AliasChoices("SEARCH_SERVICE_URL", "FASTAPI_FAISS_URL")
    )
    DETECTION_TIMEOUT: float = 30.0
    SERVICE_TIMEOUT: float = 30.0

    DETECTION_RESIZE: Optional[int] = None  # e.g. 200 for a 200x200 detector input
    MAX_MATCHES: int = 15
    CLEANUP_DELAY: float = 30.0

    UPLOAD_DIR: str = "uploads"
    UPLOADS_URL: str = "/uploads"
    PUBLIC_DIR: str = "public"
    CATALOGUE_DIR: str = "catalogue"

    API_PREFIX: str = ""
    ALLOW_ORIGINS: str = Field("*", validation_alias=AliasChoices("ALLOW_ORIGINS", "FRONTEND_URL"))
    LOG_LEVEL: str = "INFO"

    @property
    def origins(self) -> List[str]:
        return [o.strip() for o in self.ALLOW_ORIGINS.split(",") if o.strip()]
