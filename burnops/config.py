from pydantic_settings import BaseSettings
from pydantic import Field
from typing import Optional


class Settings(BaseSettings):
    # Core
    environment: str = Field(default="dev")
    app_name: str = Field(default="Fuoco Prescritto API")
    tz_default: str = Field(default="Europe/Rome", alias="TZ_DEFAULT")

    # Server
    host: str = Field(default="0.0.0.0")
    port: int = Field(default=8000)

    # Local record store (embedded, survives restarts)
    database_url: str = Field(
        default="sqlite:///./var/burnops.db",
        alias="DATABASE_URL",
        description="Embedded store, e.g. sqlite:///./var/burnops.db",
    )
    auto_create_db: bool = Field(default=True, alias="AUTO_CREATE_DB")

    # Remote authoritative store + auth provider (PostgREST / GoTrue style)
    remote_url: Optional[str] = Field(default=None, alias="REMOTE_URL")
    remote_api_key: Optional[str] = Field(default=None, alias="REMOTE_API_KEY")
    remote_table: str = Field(default="burns", alias="REMOTE_TABLE")
    remote_timeout_s: float = Field(default=15.0, alias="REMOTE_TIMEOUT_S")

    # Connectivity signal initial value
    start_online: bool = Field(default=True, alias="START_ONLINE")

    # AI analysis (OpenAI-compatible chat completions)
    groq_api_key: Optional[str] = Field(default=None, alias="GROQ_API_KEY")
    groq_base_url: str = Field(default="https://api.groq.com/openai/v1", alias="GROQ_BASE_URL")
    groq_model: str = Field(default="llama-3.3-70b-versatile", alias="GROQ_MODEL")
    analysis_timeout_s: float = Field(default=60.0, alias="ANALYSIS_TIMEOUT_S")

    # Weather / geocoding lookups
    open_meteo_url: str = Field(default="https://api.open-meteo.com/v1/forecast", alias="OPEN_METEO_URL")
    nominatim_url: str = Field(default="https://nominatim.openstreetmap.org/search", alias="NOMINATIM_URL")
    lookup_timeout_s: float = Field(default=10.0, alias="LOOKUP_TIMEOUT_S")
    user_agent: str = Field(default="burnops/0.1 (field operations)", alias="USER_AGENT")

    # Reports
    report_org_name: str = Field(default="CORPO FORESTALE SARDEGNA", alias="REPORT_ORG_NAME")
    report_title: str = Field(default="REPORT OPERATIVO FUOCO PRESCRITTO", alias="REPORT_TITLE")

    # Rate limit
    rate_limit: str = Field(default="100/minute")

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = False


settings = Settings()
