from typing import Optional

from pydantic import field_validator, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict

from .secrets_manager import SecretsManager


class Settings(BaseSettings):
    aws_region: str = "us-east-1"
    environment: str = "development"
    host: str = "localhost"
    port: int = 5432
    db_username: str = "postgres"
    db_password: SecretStr = SecretStr("postgres")
    database: str = "netgains"
    # Full SQLAlchemy URL, takes precedence over the discrete db_* fields
    database_url: Optional[str] = None
    push_notification_url: SecretStr = SecretStr("http://localhost:3000/api/push-http")
    firebase_project_id: str = "netgains-app"

    # Deep links handed out in SMS invitations
    app_domain: str = "netgains.app"

    # Attachment storage
    storage_backend: str = "s3"  # s3 or memory
    attachments_bucket: str = "netgains-attachments"
    attachments_public_base_url: Optional[str] = None
    upload_timeout_seconds: float = 30.0
    image_max_dimension: int = 1200
    image_quality: int = 80

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    @field_validator("db_username", "db_password", "push_notification_url", mode="before")
    @classmethod
    def load_secrets(cls, v, info):
        if info.data.get("environment") != "production":
            return v
        try:
            secrets = SecretsManager(region_name=info.data.get("aws_region"))
            if info.field_name == "db_username":
                return secrets.get_db_credentials()["username"]
            if info.field_name == "db_password":
                return secrets.get_db_credentials()["password"]
            if info.field_name == "push_notification_url":
                return secrets.get_secret("push-notification-url")
        except Exception:
            # Secrets Manager unavailable, keep the environment value
            return v
        return v

    @property
    def sqlalchemy_database_url(self) -> str:
        if self.database_url:
            return self.database_url
        return (
            f"postgresql+psycopg://{self.db_username}:{self.db_password.get_secret_value()}"
            f"@{self.host}:{self.port}/{self.database}"
        )


settings = Settings()
