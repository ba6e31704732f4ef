from pydantic_settings import BaseSettings
from pydantic import Field
from typing import Optional


class Settings(BaseSettings):
    # Core
    environment: str = Field(default="dev", alias="ENVIRONMENT")
    app_name: str = Field(default="Field Attendance", alias="APP_NAME")
    tz_default: str = Field(default="Asia/Kolkata", alias="TZ_DEFAULT")

    # Server (loopback only, the UI shell runs on the same device)
    host: str = Field(default="127.0.0.1")
    port: int = Field(default=8000)

    # Local store
    database_url: str = Field(
        default="sqlite:///./var/fieldapp.db",
        alias="DATABASE_URL",
        description="SQLite file on the device, e.g. sqlite:////data/fieldapp.db",
    )
    auto_create_db: bool = Field(default=True, alias="AUTO_CREATE_DB")
    store_backend: str = Field(default="sql", alias="STORE_BACKEND")  # sql|memory

    # Photos
    photo_dir: str = Field(default="var/photos", alias="PHOTO_DIR")

    # Location
    location_provider: str = Field(default="manual", alias="LOCATION_PROVIDER")  # manual|http
    location_service_url: Optional[str] = Field(default=None, alias="LOCATION_SERVICE_URL")
    location_timeout_s: float = Field(default=12.0, alias="LOCATION_TIMEOUT_S")
    manual_latitude: Optional[float] = Field(default=None, alias="MANUAL_LATITUDE")
    manual_longitude: Optional[float] = Field(default=None, alias="MANUAL_LONGITUDE")
    location_permission_granted: bool = Field(default=True, alias="LOCATION_PERMISSION")

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = False
        populate_by_name = True


settings = Settings()
