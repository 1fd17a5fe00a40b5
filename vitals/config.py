from typing import List
from pydantic import BaseModel, Field
import os
from functools import lru_cache


_TRUE_VALUES = {"1", "true", "yes", "on"}


class Settings(BaseModel):
    # HTTP server
    host: str = Field(
        default="0.0.0.0",
        description="Address the HTTP server listens on",
    )
    port: int = Field(
        default=8080,
        ge=1,
        le=65535,
        description="Port the HTTP server listens on",
    )
    env: str = Field(
        default="development",
        description="Environment mode, e.g. development or production",
    )
    frontend_url: str = Field(
        default="http://localhost:3000",
        description="Origin of the dashboard allowed by CORS",
    )
    log_level: str = Field(
        default="INFO",
        description="Minimum log level (DEBUG, INFO, WARNING, ...)",
    )

    # Collection / streaming
    tick_interval_seconds: float = Field(
        default=5.0,
        gt=0,
        description="Seconds between two snapshots pushed on the SSE stream",
    )
    cpu_sample_seconds: float = Field(
        default=1.0,
        gt=0,
        description="Blocking CPU sampling window per snapshot",
    )
    check_updates: bool = Field(
        default=True,
        description="Count pending OS package updates on every snapshot",
    )
    update_check_timeout_seconds: float = Field(
        default=10.0,
        gt=0,
        description="Timeout for every external command run by a probe",
    )

    @property
    def is_development(self) -> bool:
        return self.env == "development"

    @property
    def cors_origins(self) -> List[str]:
        return [o.strip() for o in self.frontend_url.split(",") if o.strip()]

    @classmethod
    def from_env(cls) -> "Settings":
        # Only pass what is actually set so the field defaults stay in one place
        values = {}
        for field_name, env_name in (
            ("host", "HOST"),
            ("port", "PORT"),
            ("env", "ENV"),
            ("frontend_url", "FRONTEND_URL"),
            ("log_level", "LOG_LEVEL"),
            ("tick_interval_seconds", "TICK_INTERVAL_SECONDS"),
            ("cpu_sample_seconds", "CPU_SAMPLE_SECONDS"),
            ("update_check_timeout_seconds", "UPDATE_CHECK_TIMEOUT_SECONDS"),
        ):
            raw = os.getenv(env_name)
            if raw is not None and raw.strip():
                values[field_name] = raw.strip()

        raw_check_updates = os.getenv("CHECK_UPDATES")
        if raw_check_updates is not None and raw_check_updates.strip():
            values["check_updates"] = raw_check_updates.strip().lower() in _TRUE_VALUES

        return cls(**values)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings.from_env()
