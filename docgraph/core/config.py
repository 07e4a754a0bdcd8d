# docgraph/core/config.py
from pydantic_settings import BaseSettings, SettingsConfigDict

class Settings(BaseSettings):
    MONGO_URI: str
    MONGO_DATABASE: str = "graph"
    GRAPH_CATEGORY: str = "dev"
    CASCADE_TRANSACTIONAL: bool = True
    STORE_RETRIES: int = 3
    STORE_RETRY_DELAY: float = 0.5
    LOG_LEVEL: str = "INFO"

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

settings = Settings()
