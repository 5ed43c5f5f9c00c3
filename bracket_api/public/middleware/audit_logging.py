"""
Audit logging middleware for FastAPI.

This middleware:
1. Reuses or generates a request ID
2. Hashes the request payload (never stores it)
3. Logs one structured JSON audit entry per request
4. Applies redaction rules to string fields

Usage:
    app.add_middleware(AuditLoggingMiddleware)
"""

import json
import hashlib
import time
import logging
import re
from uuid import uuid4
from typing import Optional, Dict, Any
from datetime import datetime, timezone

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response


def request_id_for(request: Request) -> str:
    """
    Return the request's ID, creating it on first use.

    The ID is the client's X-Request-ID when sent, else a fresh uuid4. It is
    stored on request.state.trace_id, which every middleware layer shares
    through the ASGI scope, so all layers see the same value.
    """
    request_id = getattr(request.state, "trace_id", None)
    if not request_id:
        request_id = request.headers.get("X-Request-ID") or str(uuid4())
        request.state.trace_id = request_id
    return request_id


class AuditLogger:
    """Structured audit logger with redaction rules."""

    # Patterns to redact (sensitive data)
    REDACTION_PATTERNS = {
        "api_key": r"(Bearer\s+[a-zA-Z0-9._\-]+)",
        "email": r"[\w\.-]+@[\w\.-]+\.\w+",
        "token": r"(?i)(token|authorization)[:\s=\"]+[^\s,}]+",
    }

    def __init__(self, name: str = "audit", enable_redaction: bool = True):
        self.logger = logging.getLogger(name)
        self.enable_redaction = enable_redaction

    @staticmethod
    def client_id(request: Request) -> Optional[str]:
        """Obfuscated caller identity: bearer key suffix, else client host."""
        auth_header = request.headers.get("Authorization", "")
        parts = auth_header.split()
        if len(parts) >= 2:
            return f"key_***{parts[1][-5:]}"
        if request.client:
            return request.client.host
        return None

    @staticmethod
    def hash_payload(payload: bytes) -> str:
        """Create SHA-256 hash of request payload."""
        if not payload:
            return "sha256:empty"
        return f"sha256:{hashlib.sha256(payload).hexdigest()[:16]}..."

    def redact(self, text: str) -> str:
        """Apply redaction rules to remove sensitive data."""
        if not self.enable_redaction or not isinstance(text, str):
            return text

        result = text
        for pattern_name, pattern in self.REDACTION_PATTERNS.items():
            result = re.sub(pattern, f"[REDACTED_{pattern_name.upper()}]", result, flags=re.IGNORECASE)
        return result

    def create_audit_entry(
        self,
        request_id: str,
        client_id: Optional[str],
        endpoint: str,
        http_method: str,
        http_status: int,
        latency_ms: float,
        payload_hash: str,
        error_code: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Create a structured audit log entry."""
        return {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "request_id": request_id,
            "client_id": client_id,
            "endpoint": endpoint,
            "http_method": http_method,
            "http_status": http_status,
            "latency_ms": round(latency_ms, 3),
            "payload_hash": payload_hash,
            "error_code": error_code,
        }

    def log_entry(self, entry: Dict[str, Any]):
        """Write audit entry to log (JSON format)."""
        redacted_entry = {k: self.redact(v) if isinstance(v, str) else v for k, v in entry.items()}
        self.logger.info(json.dumps(redacted_entry))


def error_code_for_status(status_code: int) -> Optional[str]:
    if status_code < 400:
        return None
    if status_code == 429:
        return "RATE_LIMIT_EXCEEDED"
    if status_code == 413:
        return "PAYLOAD_TOO_LARGE"
    if status_code == 404:
        return "NOT_FOUND"
    if status_code == 422:
        return "VALIDATION_ERROR"
    if status_code >= 500:
        return "SERVER_ERROR"
    return "CLIENT_ERROR"


class AuditLoggingMiddleware(BaseHTTPMiddleware):
    """
    Log every API call with an audit trail entry.

    No raw payloads are stored; bracket inputs are only ever hashed.
    """

    def __init__(self, app, enable_redaction: bool = True, enable_logging: bool = True):
        super().__init__(app)
        self.audit_logger = AuditLogger(enable_redaction=enable_redaction)
        self.enable_logging = enable_logging

    async def dispatch(self, request: Request, call_next) -> Response:
        """Process request, measure latency, log audit entry."""
        request_id = request_id_for(request)
        client_id = self.audit_logger.client_id(request)

        # Starlette caches the body, so the route can still read it
        body = await request.body()
        payload_hash = self.audit_logger.hash_payload(body)

        start_time = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception:
            latency_ms = (time.perf_counter() - start_time) * 1000
            if self.enable_logging:
                self.audit_logger.log_entry(self.audit_logger.create_audit_entry(
                    request_id=request_id,
                    client_id=client_id,
                    endpoint=str(request.url.path),
                    http_method=request.method,
                    http_status=500,
                    latency_ms=latency_ms,
                    payload_hash=payload_hash,
                    error_code="INTERNAL_ERROR",
                ))
            raise

        latency_ms = (time.perf_counter() - start_time) * 1000
        if self.enable_logging:
            self.audit_logger.log_entry(self.audit_logger.create_audit_entry(
                request_id=request_id,
                client_id=client_id,
                endpoint=str(request.url.path),
                http_method=request.method,
                http_status=response.status_code,
                latency_ms=latency_ms,
                payload_hash=payload_hash,
                error_code=error_code_for_status(response.status_code),
            ))

        response.headers["X-Request-ID"] = request_id
        return response


class RequestIDMiddleware(BaseHTTPMiddleware):
    """
    Ensure every response carries a request ID.
    Outermost layer: the ID is created here and reused by everything inside.
    """

    async def dispatch(self, request: Request, call_next) -> Response:
        request_id = request_id_for(request)

        response = await call_next(request)
        response.headers["X-Request-ID"] = request_id

        return response
