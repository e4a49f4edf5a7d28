from functools import lru_cache
from pathlib import Path

from pydantic import BaseModel, SecretStr, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class FFLogsConfig(BaseModel):
    api_key: SecretStr = SecretStr("")
    api_key_file: Path | None = None  # takes precedence over api_key
    api_url: str = "https://www.fflogs.com/v1"
    timeout: float = 30.0

    def get_api_key(self) -> str:
        if self.api_key_file is not None:
            return self.api_key_file.read_text(encoding="utf-8").strip()
        return self.api_key.get_secret_value()


class AnalysisConfig(BaseModel):
    definitions_dir: Path = Path("./phaseidentifiers")
    heartbeat_interval_seconds: float = 4.0


class RateLimitConfig(BaseModel):
    max_calls: int = 30
    period_seconds: float = 60.0


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
    )

    debug: bool = False
    log_level: str = "INFO"
    fflogs: FFLogsConfig = FFLogsConfig()
    analysis: AnalysisConfig = AnalysisConfig()
    rate_limit: RateLimitConfig = RateLimitConfig()

    @model_validator(mode="after")
    def _check_cross_field_deps(self):
        if self.rate_limit.max_calls < 1:
            raise ValueError("RATE_LIMIT__MAX_CALLS must be >= 1")
        if self.rate_limit.period_seconds <= 0:
            raise ValueError("RATE_LIMIT__PERIOD_SECONDS must be > 0")
        if self.analysis.heartbeat_interval_seconds <= 0:
            raise ValueError(
                "ANALYSIS__HEARTBEAT_INTERVAL_SECONDS must be > 0"
            )
        return self


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
