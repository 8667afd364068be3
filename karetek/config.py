from typing import List, Optional
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field

class Settings(BaseSettings):
    # Environment
    environment: str = Field(default="development")
    debug: bool = Field(default=True)

    # JWT
    jwt_secret: str = Field(default="karetek_secret_key_2025")
    jwt_algorithm: str = Field(default="HS256")
    jwt_expiration_days: int = Field(default=7)
    bcrypt_rounds: int = Field(default=12)

    # Database
    database_url: str = Field(default="sqlite:///./karetek.db")

    # LLM Configuration
    llm_provider: str = Field(default="openai")
    openai_api_key: Optional[str] = Field(default=None)
    openai_model: str = Field(default="gpt-4o-mini")
    openai_base_url: str = Field(default="https://api.openai.com/v1")

    # Text-to-speech
    tts_provider: str = Field(default="elevenlabs")
    elevenlabs_api_key: Optional[str] = Field(default=None)
    elevenlabs_base_url: str = Field(default="https://api.elevenlabs.io")

    # Storage
    storage_provider: str = Field(default="supabase")
    supabase_url: Optional[str] = Field(default=None)
    supabase_service_key: Optional[str] = Field(default=None)
    storage_bucket: str = Field(default="avatar-audio")
    storage_path: str = Field(default="./storage")
    public_base_url: str = Field(default="http://localhost:5000")

    # OAuth
    google_client_id: Optional[str] = Field(default=None)
    google_client_secret: Optional[str] = Field(default=None)
    google_callback_url: str = Field(default="http://localhost:5000/auth/google/callback")
    facebook_app_id: Optional[str] = Field(default=None)
    facebook_app_secret: Optional[str] = Field(default=None)
    facebook_callback_url: str = Field(default="http://localhost:5000/auth/facebook/callback")

    # API Configuration
    frontend_url: str = Field(default="http://localhost:3000")
    cors_origins: str = Field(default="http://localhost:3000")

    # Rate Limiting
    rate_limit_requests: int = Field(default=100)
    rate_limit_window_minutes: int = Field(default=15)

    # Monitoring
    prometheus_enabled: bool = Field(default=True)

    @property
    def cors_origins_list(self) -> List[str]:
        return [origin.strip() for origin in self.cors_origins.split(",")]

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )

settings = Settings()
