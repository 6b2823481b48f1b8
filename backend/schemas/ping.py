"""Pydantic schema for the ping endpoint."""

from pydantic import BaseModel, Field


class PingResponse(BaseModel):
    message: str = Field(..., description="Always 'pong' while the projection API is serving.")
