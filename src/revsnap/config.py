from functools import lru_cache
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Settings loaded from ``REVSNAP_*`` environment variables.

    Command-line options take precedence over these values.
    """

    model_config = SettingsConfigDict(env_prefix="REVSNAP_")

    repository_path: Path = Path(".")
    # Defaults to <repository>/.revsnap/reviews.db
    db_path: Path | None = None
    log_level: str = "WARNING"
    page_size: int = 20

    def resolve_db_path(self, repository_path: Path | None = None) -> Path:
        if self.db_path is not None:
            return self.db_path
        repo = repository_path or self.repository_path
        return repo / ".revsnap" / "reviews.db"


@lru_cache
def get_settings() -> Settings:
    return Settings()
