from typing import List, Optional, Union

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # Application
    PROJECT_NAME: str = "Bullwhip Game API"
    VERSION: str = "1.0.0"
    API_V1_STR: str = "/api/v1"
    DEBUG: bool = True
    ENVIRONMENT: str = "development"

    # CORS
    CORS_ORIGINS: List[str] = ["http://localhost:3000", "http://localhost:8000"]
    CORS_ALLOW_CREDENTIALS: bool = True
    CORS_ALLOW_METHODS: List[str] = ["*"]
    CORS_ALLOW_HEADERS: List[str] = ["*"]

    # Game Settings
    INITIAL_INVENTORY: int = Field(default=12, ge=0)
    HOLDING_COST_PER_UNIT: float = Field(default=0.5, ge=0)
    STOCKOUT_COST_PER_UNIT: float = Field(default=1.0, ge=0)
    MAX_ROUNDS: int = Field(default=20, ge=1)
    SHIPMENT_LEAD_TIME: int = Field(default=2, ge=2)  # pipeline never shorter than 2 rounds
    RANDOM_SEED: Optional[int] = None

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    LOG_DIR: Optional[str] = None

    model_config = SettingsConfigDict(
        case_sensitive=True,
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    @field_validator("CORS_ORIGINS", mode="before")
    @classmethod
    def assemble_cors_origins(cls, v: Union[str, List[str]]) -> Union[List[str], str]:
        if isinstance(v, str) and not v.startswith("["):
            return [i.strip() for i in v.split(",") if i.strip()]
        elif isinstance(v, (list, str)):
            return v
        raise ValueError(v)


def get_settings() -> Settings:
    """Get the application settings."""
    return Settings()


# Global settings instance
settings = get_settings()
