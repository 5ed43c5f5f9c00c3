"""
Prometheus scrape endpoint.
"""
from fastapi import APIRouter
from fastapi.responses import Response

from ..metrics import CONTENT_TYPE, metrics

router = APIRouter()


@router.get("/metrics", include_in_schema=False)
def scrape() -> Response:
    return Response(metrics.render(), media_type=CONTENT_TYPE)
