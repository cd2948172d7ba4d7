"""Application configuration."""
from pydantic_settings import BaseSettings
from typing import List, Tuple


class Settings(BaseSettings):
    """Application settings."""

    # MongoDB
    mongodb_url: str = "mongodb://localhost:27017"
    mongodb_db_name: str = "mock_interviews"
    mongodb_timeout_ms: int = 10000

    # JWT (access tokens are issued by the external auth provider)
    jwt_secret_key: str = ""
    jwt_algorithm: str = "HS256"
    jwt_audience: str = "authenticated"
    admin_api_key: str = ""

    # Application
    app_name: str = "Mock Interview Engine"
    app_version: str = "1.0.0"
    debug: bool = True
    log_level: str = "INFO"

    # CORS
    allowed_origins: str = "http://localhost:8081,http://localhost:19006"

    # Conversation minutes
    default_conversation_minutes: int = 25

    # Tavus
    tavus_api_key: str = ""
    tavus_base_url: str = "https://tavusapi.com/v2"
    tavus_timeout_seconds: float = 30.0
    max_call_duration_seconds: int = 3600
    tavus_technical_replica_id: str = ""
    tavus_technical_persona_id: str = ""
    tavus_behavioral_replica_id: str = ""
    tavus_behavioral_persona_id: str = ""
    tavus_mixed_replica_id: str = ""
    tavus_mixed_persona_id: str = ""
    tavus_screening_replica_id: str = ""
    tavus_screening_persona_id: str = ""

    # Prompt generation
    openai_api_key: str = ""
    openai_model: str = "gpt-4o-mini"
    prompt_worker_enabled: bool = False
    prompt_worker_poll_seconds: float = 5.0

    @property
    def allowed_origins_list(self) -> List[str]:
        """Get allowed origins as a list."""
        return [origin.strip() for origin in self.allowed_origins.split(",")]

    def tavus_ids_for(self, interview_type: str) -> Tuple[str, str]:
        """Replica and persona ids configured for an interview type ("" when unmapped)."""
        key = (interview_type or "").strip().lower()
        replica_id = getattr(self, f"tavus_{key}_replica_id", "") if key else ""
        persona_id = getattr(self, f"tavus_{key}_persona_id", "") if key else ""
        return replica_id or "", persona_id or ""

    class Config:
        env_file = ".env"
        case_sensitive = False


settings = Settings()
