"""Application settings using Pydantic Settings"""
from pydantic import field_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    DATABASE_URL: str
    
    APP_ENV: str = "dev"
    
    CSV_MAX_UPLOAD_MB: int = 5
    IMPORT_PREVIEW_LIMIT: int = 20
    IMPORT_SESSION_TTL_MINUTES: int = 30
    IMPORT_ERROR_DIR: str = "/tmp/shift_import_errors"
    
    @field_validator("APP_ENV")
    @classmethod
    def validate_app_env(cls, v: str) -> str:
        allowed = ["dev", "staging", "prod"]
        if v not in allowed:
            raise ValueError(f"APP_ENV must be one of: {allowed}")
        return v
    
    @field_validator("CSV_MAX_UPLOAD_MB", "IMPORT_PREVIEW_LIMIT", "IMPORT_SESSION_TTL_MINUTES")
    @classmethod
    def validate_positive(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("must be a positive integer")
        return v
    
    @property
    def is_production(self) -> bool:
        return self.APP_ENV == "prod"
    
    @property
    def csv_max_upload_bytes(self) -> int:
        return self.CSV_MAX_UPLOAD_MB * 1024 * 1024
    
    class Config:
        env_file = ".env"
        extra = "ignore"


settings = Settings()


def get_settings() -> Settings:
    return settings
