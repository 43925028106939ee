## fuel_ledger/core/config.py

from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Settings for the application
    """

    model_config = SettingsConfigDict(
        env_file=".env", extra="ignore", case_sensitive=False
    )

    environment: str = "development"
    allowed_cors_urls: str = "*"

    db_host: str = "localhost"
    db_user: str = "root"
    db_password: str = ""
    db_database: str = "fuel_ledger"
    db_port: int = 3306

    # Full SQLAlchemy URL, takes precedence over the db_* fields when set
    database_url: Optional[str] = None

    log_level: str = "INFO"
    log_json: bool = False
    log_file: Optional[str] = None

    app_name: str = "Fuel Consumption Ledger"

    @property
    def async_db_url(self) -> str:
        """
        Async database URL
        """
        if self.database_url:
            return self.database_url
        return f"mysql+asyncmy://{self.db_user}:{self.db_password}@{self.db_host}:{self.db_port}/{self.db_database}"


settings = Settings()
