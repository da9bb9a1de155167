from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="DEVICEFARM_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    adb_executable: str = "adb"
    xcrun_executable: str = "xcrun"
    maestro_executable: str = "maestro"

    android_home: str = Field(
        default="",
        validation_alias=AliasChoices("ANDROID_HOME", "ANDROID_SDK_ROOT", "DEVICEFARM_ANDROID_HOME"),
    )

    temp_dir: str = ""  # empty means the OS temp directory

    command_timeout_seconds: float = 300.0
    max_video_duration: int = 60
    max_performance_duration: int = 300
    sample_interval_seconds: float = 1.0
    logcat_window_lines: int = 200

    log_level: str = "INFO"
    sentry_dsn: str = ""
    environment: str = "development"
    allowed_origins: str = ""
    host: str = "127.0.0.1"
    port: int = 8765

    @field_validator("log_level")
    @classmethod
    def normalize_log_level(cls, value: str) -> str:
        return value.strip().upper() or "INFO"


settings = Settings()
