"""
MeMantra Backend — Shared Envelope Schemas
============================================

What:  Response models reused across resources: plain message responses,
       error responses and the health check.
"""

from typing import Any, Dict, Literal, Optional

from pydantic import BaseModel, Field


class MessageResponse(BaseModel):
    """Success envelope that carries only a message (deletes, unsaves)."""
    status: Literal["success"] = "success"
    message: str


class ErrorResponse(BaseModel):
    """
    Error envelope returned by every global exception handler.

    Example:
        {"status": "error", "message": "Access denied"}
    """
    status: Literal["error"] = "error"
    message: str = Field(description="Human-readable error description")
    data: Optional[Dict[str, Any]] = Field(
        default=None,
        description="Extra detail, e.g. field errors for validation failures",
    )


class MembershipResponse(BaseModel):
    """
    Result of an idempotent add (collection membership, like, save).

    `alreadyExists` tells the client whether the call changed anything:
    false when this request created the row, true when it was already there
    (including when a concurrent request won the insert).
    """
    status: Literal["success"] = "success"
    message: str
    already_exists: bool = Field(alias="alreadyExists")

    model_config = {"populate_by_name": True}


class HealthResponse(BaseModel):
    status: str = Field(description="Overall service status: healthy or unhealthy")
    version: str = Field(description="Application version")
    database: str = Field(description="Database connectivity: connected, disconnected")
    uptime_seconds: float = Field(description="Seconds since service started")
