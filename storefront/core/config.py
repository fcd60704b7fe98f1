from pydantic_settings import BaseSettings
from pydantic import AliasChoices, Field

class Settings(BaseSettings):
    PROJECT_NAME: str = "Optique Storefront API"
    DATABASE_URL: str = "sqlite:///./storefront.db"
    LOG_LEVEL: str = "INFO"

    # Hosted backend (PostgREST + auth)
    SUPABASE_URL: str = "http://localhost:54321"
    SUPABASE_ANON_KEY: str = Field(
        "anon_key_placeholder",
        validation_alias=AliasChoices("SUPABASE_ANON_KEY", "SUPABASE_PUBLISHABLE_KEY"),
    )
    SUPABASE_JWT_SECRET: str = "super-secret-jwt-token-change-me"
    ALGORITHM: str = "HS256"
    REMOTE_TIMEOUT_SECONDS: float = 15.0

    # Shop
    CURRENCY: str = "TND"
    DEFAULT_DELIVERY_PRICE: float = 7.0
    SITE_URL: str = "http://localhost:8080"

    @property
    def REST_URL(self) -> str:
        return f"{self.SUPABASE_URL.rstrip('/')}/rest/v1"

    class Config:
        env_file = ".env"
        extra = "ignore"


settings = Settings()
