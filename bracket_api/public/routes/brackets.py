"""
Bracket endpoints: /validate and /fix.

Both calls answer HTTP 200. A rejected input (empty string, bad string) is
reported in-band through "err" and "code", as v1 clients expect,
so "Not Balanced" and a genuine failure stay distinguishable.

Every call is counted and written to the audit trail (input hash and length,
never the raw input).
"""
from fastapi import APIRouter, HTTPException, Request, Security
from fastapi.security import APIKeyHeader
from datetime import datetime, timezone
import hashlib
import json
import logging

from domain_kits.brackets import BracketError, BracketErrorTaxonomy, inspect, repair

from ..metrics import metrics
from ..middleware.audit_logging import request_id_for
from ..schemas import BracketRequest, ValidateResponse, FixResponse
from ..settings import settings

router = APIRouter()

logger = logging.getLogger(__name__)

# Audit logger (configured in main.py)
audit_logger = logging.getLogger("audit")

# Smoke test security: 404 for missing/wrong key (stealth mode)
smoke_key_header = APIKeyHeader(name="X-Smoke-Key", auto_error=False)


def require_smoke_key(api_key: str = Security(smoke_key_header)) -> None:
    """
    Require valid smoke key or return 404 (pretend route doesn't exist).
    Set SMOKE_KEY in environment variables.
    """
    expected = settings.smoke_key
    if (not expected) or (api_key != expected):
        raise HTTPException(status_code=404)


def compute_hash(text: str) -> str:
    """Short SHA256 fingerprint of an input string."""
    return "sha256:" + hashlib.sha256(text.encode("utf-8", "surrogatepass")).hexdigest()[:12]


def _record(operation: str, outcome: str) -> None:
    if settings.enable_metrics:
        metrics.record(operation, outcome)


def _log_operation(
    request: Request,
    operation: str,
    text: str,
    outcome: str,
    error_code: str = None,
):
    """Write one structured audit line for a /validate or /fix call."""
    request_id = request_id_for(request)
    log_entry = {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "request_id": request_id,
        "trace_id": request_id,
        "endpoint": f"/{operation}",
        "operation": operation,
        "input_hash": compute_hash(text),
        "input_length": len(text),
        "outcome": outcome,
        "error_code": error_code,
    }
    audit_logger.info(json.dumps(log_entry))


def _rejection(exc: BracketError) -> dict:
    info = BracketErrorTaxonomy.for_exception(exc)
    return {"err": info["message"], "code": info["api_code"]}


@router.get("/_smoke", dependencies=[Security(require_smoke_key)])
async def smoke_test():
    """
    Smoke test endpoint with minimal diagnostic info.
    Requires X-Smoke-Key header. Returns 404 if missing/wrong.
    """
    return {
        "status": "ok",
        "service": settings.service_name,
        "version": settings.api_version,
        "checks": {
            "validate": inspect("([]{})").outcome.value,
            "fix": repair("([)]").result,
        },
    }


@router.post("/validate", response_model=ValidateResponse, response_model_exclude_none=True)
def validate_brackets(request: Request, req_body: BracketRequest) -> ValidateResponse:
    """
    Check whether the brackets in `s` are balanced.

    - v = "Balanced" | "Not Balanced" on success
    - empty input: v = "", err = "empty string"
    - non-bracket character: v echoes the input, err = "bad string"
    """
    text = req_body.s
    try:
        report = inspect(text)
    except BracketError as exc:
        rejection = _rejection(exc)
        logger.info("validate rejected input: %s", exc)
        _record("validate", exc.code)
        _log_operation(request, "validate", text, "rejected", error_code=rejection["code"])
        details = {"position": getattr(exc, "position", None)} if req_body.include_details else None
        # Bad string echoes the input; empty string has nothing to echo
        return ValidateResponse(v=text, details=details, **rejection)

    outcome = "balanced" if report.balanced else "not_balanced"
    _record("validate", outcome)
    _log_operation(request, "validate", text, outcome)
    return ValidateResponse(
        v=report.outcome.value,
        details=report.to_dict() if req_body.include_details else None,
    )


@router.post("/fix", response_model=FixResponse, response_model_exclude_none=True)
def fix_brackets(request: Request, req_body: BracketRequest) -> FixResponse:
    """
    Return a balanced version of `s`.

    - orphan closers get a matching opener inserted in front of them
    - brackets left open get their closers appended
    - non-bracket character: v echoes the input, err = "bad string"
    """
    text = req_body.s
    try:
        report = repair(text)
    except BracketError as exc:
        rejection = _rejection(exc)
        logger.info("fix rejected input: %s", exc)
        _record("fix", exc.code)
        _log_operation(request, "fix", text, "rejected", error_code=rejection["code"])
        details = None
        if req_body.include_details:
            details = {"position": getattr(exc, "position", None), "partial": getattr(exc, "partial", None)}
        return FixResponse(v=text, details=details, **rejection)

    outcome = "fixed" if report.changed else "unchanged"
    _record("fix", outcome)
    _log_operation(request, "fix", text, outcome)
    return FixResponse(
        v=report.result,
        details=report.to_dict() if req_body.include_details else None,
    )
