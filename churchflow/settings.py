from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    DB_URL: str = "sqlite:///./churchflow.db"
    SECRET_KEY: str = "change-me"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 15
    REFRESH_TOKEN_EXPIRE_DAYS: int = 7
    ALGORITHM: str = "HS256"

    # Session cookie carrying the access token for browser clients
    SESSION_COOKIE_NAME: str = "churchflow_session"
    SESSION_COOKIE_SECURE: bool = False

    # Tenant defaults applied on registration / onboarding
    TRIAL_DAYS: int = 30
    DEFAULT_MAX_MEMBERS: int = 500
    DEFAULT_MAX_STORAGE: int = 25  # MB

    LOG_LEVEL: str = "INFO"
    CORS_ORIGINS: list[str] = [
        "http://localhost:5173",
        "http://127.0.0.1:5173",
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ]

    # Offline check-in kiosk
    OFFLINE_QUEUE_URL: str = "sqlite:///./offline_queue.db"
    API_BASE_URL: str = "http://localhost:8000"

    model_config = {
        "extra": "ignore",  # to allow for other variables in .env (e.g. test_db_url)
        "env_file": ".env",
        "env_file_encoding": "utf-8",
    }


settings = Settings()
