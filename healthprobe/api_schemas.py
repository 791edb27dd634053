from __future__ import annotations

from pydantic import BaseModel, Field


class HealthCheckResponse(BaseModel):
    command: str = Field(description="Command line of the last health check, empty before the first run")
    timestamp: str = Field(description="RFC 3339 start time of the last health check, empty before the first run")
