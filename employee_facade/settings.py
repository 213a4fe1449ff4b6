import os

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field, model_validator

load_dotenv()


class Settings(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    # Upstream employee API
    employee_api_base_url: str = Field(
        default="http://localhost:8112/api/v1/employee", alias="EMPLOYEE_API_BASE_URL"
    )
    upstream_timeout: float = Field(default=10.0, alias="UPSTREAM_TIMEOUT")
    request_deadline: float = Field(default=30.0, alias="REQUEST_DEADLINE")

    # Retry policy
    retry_max_attempts: int = Field(default=3, ge=1, alias="RETRY_MAX_ATTEMPTS")
    retry_base_delay: float = Field(default=0.1, ge=0, alias="RETRY_BASE_DELAY")
    retry_max_delay: float = Field(default=2.0, ge=0, alias="RETRY_MAX_DELAY")
    retry_multiplier: float = Field(default=2.0, ge=1, alias="RETRY_MULTIPLIER")
    retry_jitter: bool = Field(default=True, alias="RETRY_JITTER")

    # Circuit breaker
    breaker_failure_rate_threshold: float = Field(
        default=0.5, gt=0, le=1, alias="BREAKER_FAILURE_RATE_THRESHOLD"
    )
    breaker_sliding_window_size: int = Field(
        default=10, ge=1, alias="BREAKER_SLIDING_WINDOW_SIZE"
    )
    breaker_minimum_calls: int = Field(default=5, ge=1, alias="BREAKER_MINIMUM_CALLS")
    breaker_wait_duration: float = Field(default=30.0, ge=0, alias="BREAKER_WAIT_DURATION")
    breaker_half_open_calls: int = Field(default=3, ge=1, alias="BREAKER_HALF_OPEN_CALLS")

    # Server
    api_host: str = Field(default="0.0.0.0", alias="API_HOST")
    api_port: int = Field(default=8111, alias="API_PORT")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    cache_debug: bool = Field(default=False, alias="CACHE_DEBUG")

    @model_validator(mode="after")
    def _window_holds_minimum_calls(self) -> "Settings":
        # The breaker only evaluates its rate once the window holds minimum_calls outcomes
        if self.breaker_minimum_calls > self.breaker_sliding_window_size:
            raise ValueError(
                "BREAKER_MINIMUM_CALLS must not exceed BREAKER_SLIDING_WINDOW_SIZE"
            )
        return self

    @classmethod
    def from_env(cls) -> "Settings":
        """Build settings from the process environment (unknown variables are ignored)."""
        return cls.model_validate(dict(os.environ))


global_settings = Settings.from_env()
