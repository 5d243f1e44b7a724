from pydantic import BaseModel, Field, ConfigDict, field_validator, model_validator
from typing import List

from backend_registry import ensure_single_primary

DEFAULT_PORT = 3000

# --- Configuration Models ---

class BackendConfig(BaseModel):
    model_config = ConfigDict(frozen=True, extra='forbid')

    name: str = Field(..., description="Display name, used in logs only")
    url: str = Field(..., description="Base URL of the time-tracking API, without the /api/v1 prefix")
    api_key: str = Field(..., description="Credential sent as the Basic auth password", repr=False)
    is_primary: bool = Field(False, description="Whether this backend's responses are returned to callers")


class RelayConfig(BaseModel):
    model_config = ConfigDict(frozen=True, extra='forbid')

    port: int = Field(DEFAULT_PORT, ge=0, le=65535)
    debug: bool = False
    warn_on_secondary_failure: bool = Field(
        False, description="Log secondary transport failures at WARNING instead of DEBUG"
    )
    backends: List[BackendConfig] = Field(default_factory=list)

    @field_validator("port")
    @classmethod
    def default_port(cls, value: int) -> int:
        return value or DEFAULT_PORT

    @model_validator(mode="after")
    def check_primary(self) -> "RelayConfig":
        ensure_single_primary(self.backends)
        return self


# --- Status Bar Models ---
# Field order matters: it is the key order of the rendered JSON.

class GrandTotal(BaseModel):
    decimal: str = ""
    digital: str = ""
    hours: int = 0
    minutes: int = 0
    text: str = ""
    total_seconds: int = 0


class StatusBarRange(BaseModel):
    text: str = "Today"
    timezone: str = "UTC"


class StatusBarData(BaseModel):
    grand_total: GrandTotal = Field(default_factory=GrandTotal)
    categories: List[dict] = Field(default_factory=list)
    dependencies: List[dict] = Field(default_factory=list)
    editors: List[dict] = Field(default_factory=list)
    languages: List[dict] = Field(default_factory=list)
    machines: List[dict] = Field(default_factory=list)
    operating_systems: List[dict] = Field(default_factory=list)
    projects: List[dict] = Field(default_factory=list)
    range: StatusBarRange = Field(default_factory=StatusBarRange)


class StatusBarResponse(BaseModel):
    """Empty "today" summary returned when the primary backend cannot be reached."""
    data: StatusBarData = Field(default_factory=StatusBarData)
