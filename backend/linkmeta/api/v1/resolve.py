from typing import Annotated

import httpx
from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse

from linkmeta.api.deps import get_http_transport
from linkmeta.schemas.metadata import ErrorResponse, ResolvedMetadata
from linkmeta.services.resolver import parse_target_url, resolve_link_metadata

router = APIRouter()


@router.get(
    "/resolve-link-metadata",
    response_model=ResolvedMetadata,
    responses={
        400: {"model": ErrorResponse, "description": "Missing or invalid url"},
        502: {"model": ResolvedMetadata, "description": "Upstream network failure, domain fallback included"},
        504: {"model": ResolvedMetadata, "description": "Upstream timeout, domain fallback included"},
    },
    summary="Resolve link preview metadata",
    description="Fetch an external page and return its best-effort preview image, title, author and site name. "
    "Degraded results carry hostname-derived fallback values and an explanatory `error` string.",
)
async def resolve_metadata(
    transport: Annotated[httpx.AsyncBaseTransport | None, Depends(get_http_transport)],
    url: Annotated[str | None, Query(description="Absolute http(s) URL to resolve")] = None,
):
    # Raises InvalidTargetURLError, rendered as a 400 by the app handler
    target = parse_target_url(url)
    result = await resolve_link_metadata(target, transport=transport)
    return JSONResponse(content=result.metadata.to_payload(), status_code=result.status_code)
