"""
Configuration settings for the CIIP telemetry engine
"""

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings"""

    # Database
    db_host: str = "postgres"
    db_port: str = "5432"
    db_name: str = "ciip_db"
    db_user: str = "ciip_user"
    db_password: str = "ciip_password"
    database_url: str = ""

    # API Settings
    api_host: str = "0.0.0.0"
    api_port: int = 8000
    debug: bool = False

    # Telemetry pipeline
    pipeline_enabled: bool = True
    tick_interval_seconds: float = 10.0
    health_batch_size: int = 300
    alert_batch_size: int = 300
    running_rpm_threshold: float = 200.0  # rpm above this is RUNNING
    escalate_active_alerts: bool = False

    # Logging
    log_level: str = "INFO"

    class Config:
        env_file = ".env"
        case_sensitive = False

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        # Build database_url from components unless given explicitly
        if not self.database_url:
            self.database_url = f"postgresql://{self.db_user}:{self.db_password}@{self.db_host}:{self.db_port}/{self.db_name}"


# Global settings instance
settings = Settings()
