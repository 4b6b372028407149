from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    DATABASE_URL: str = "sqlite:///./fuelflow.db"
    SECRET_KEY: str = "dev-insecure-key-change-in-production"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 12

    # CORS origins for the dashboard
    CORS_ORIGINS: list[str] = ["http://localhost:5173", "http://localhost:3000"]

    # Account lockout
    MAX_LOGIN_ATTEMPTS: int = 5
    LOCKOUT_MINUTES: int = 15

    # Google sign-in (token-info exchange)
    GOOGLE_TOKENINFO_URL: str = "https://oauth2.googleapis.com/tokeninfo"
    GOOGLE_CLIENT_ID: str = ""
    GOOGLE_TIMEOUT_SECONDS: float = 10.0

    DEFAULT_CURRENCY: str = "PKR"

    LOG_LEVEL: str = "INFO"
    LOG_JSON: bool = False


settings = Settings()
