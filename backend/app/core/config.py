from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    PROJECT_NAME: str = "Team Tracker"
    API_STR: str = "/api"

    MONGODB_URL: str
    DATABASE_NAME: str = "team_tracker"
    MONGODB_SERVER_SELECTION_TIMEOUT_MS: int = 5000

    # Redis Cache Settings
    REDIS_URL: str = "redis://localhost:6379/0"
    CACHE_PREFIX: str = "tt:"
    PROFILE_CACHE_TTL_SECONDS: int = 3600

    # Reconciliation of userProfiles.teams against team membership (0 disables)
    RECONCILIATION_INTERVAL_MINUTES: int = 60

    LOG_LEVEL: str = "INFO"

    class Config:
        case_sensitive = True
        env_file = ".env"


settings = Settings()
