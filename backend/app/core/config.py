from pydantic_settings import BaseSettings

class Settings(BaseSettings):
    APP_NAME: str = "Taskflow API"
    DATABASE_URL: str = "sqlite+aiosqlite:///./taskflow.db"
    DB_ECHO: bool = False
    DB_SSL: bool = False  # asyncpg only
    LOG_LEVEL: str = "INFO"
    API_PORT: int = 8000

    class Config:
        env_file = ".env"

settings = Settings()
