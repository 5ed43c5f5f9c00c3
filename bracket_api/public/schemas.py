"""
Pydantic models for request/response validation.
These define the exact contract between client and API.

The /validate and /fix envelopes keep the v1 field names
("s" in, "v"/"err" out) so existing clients keep working.
"""
from pydantic import BaseModel, Field
from typing import Optional, Dict, Any
from datetime import datetime

from .settings import settings


class BracketRequest(BaseModel):
    """Input for /validate and /fix."""
    s: str = Field(..., max_length=settings.max_input_chars, description="Bracket sequence to check or repair")
    include_details: bool = Field(False, description="If True, add a details block explaining the result")


class ValidateResponse(BaseModel):
    """Validation verdict. Errors are reported in-band with HTTP 200."""
    v: str = Field(..., description="'Balanced' or 'Not Balanced'; echoes the input on bad string")
    err: Optional[str] = Field(None, description="'empty string' or 'bad string' when the input was rejected")
    code: Optional[str] = Field(None, description="Machine-readable error code: EMPTY_INPUT | INVALID_CHARACTER")
    details: Optional[Dict[str, Any]] = Field(None, description="Diagnostics (include_details only)")


class FixResponse(BaseModel):
    """Repaired sequence. Errors are reported in-band with HTTP 200."""
    v: str = Field(..., description="Balanced version of the input; echoes the input on bad string")
    err: Optional[str] = Field(None, description="'bad string' when the input was rejected")
    code: Optional[str] = Field(None, description="Machine-readable error code: INVALID_CHARACTER")
    details: Optional[Dict[str, Any]] = Field(None, description="Diagnostics (include_details only)")


class ErrorResponse(BaseModel):
    """Standard error response."""
    trace_id: str = Field(..., description="Unique request ID")
    status: str = Field(default="error", description="Always 'error'")
    error: Dict[str, Any] = Field(..., description="Error details with 'code', 'message', optional 'detail'")


class HealthResponse(BaseModel):
    """Health check response."""
    status: str = Field(..., description="'ok' if healthy")
    service: str = Field(..., description="Service name")
    version: str = Field(..., description="API version")
    commit: str = Field(..., description="Git commit hash")
    timestamp: datetime = Field(..., description="Current time (ISO8601)")
