from pydantic_settings import BaseSettings, SettingsConfigDict
from functools import lru_cache


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    neo4j_uri: str = "neo4j://localhost:7687"
    neo4j_user: str = "neo4j"
    neo4j_password: str = ""
    api_version: str = "v1"
    log_level: str = "INFO"
    cors_origins: list[str] = ["http://localhost:5173", "http://localhost:3000", "http://127.0.0.1:5173"]

    # Traversal
    traversal_max_depth: int = 20
    traversal_batch_size: int = 500
    traversal_max_workers: int = 4

    # Analytics thresholds
    zscore_threshold: float = 2.0
    hhi_moderate: float = 1500
    hhi_concentrated: float = 2500
    gini_bands: tuple[float, float, float] = (0.2, 0.4, 0.6)
    co_investment_top_n: int = 5

    # Derived ids
    id_suffix_length: int = 4
    id_max_length: int = 50


@lru_cache
def get_settings() -> Settings:
    return Settings()
