"""Builders for the response envelope and RFC 7807 problem details."""

from datetime import datetime, timezone
from typing import Any, Dict, NoReturn, Optional
from uuid import uuid4

from fastapi import HTTPException, Request
from pydantic import BaseModel

from trajectplan.schemas.common import ApiResponse, ErrorDetail, ResponseMeta


def request_id_for(request: Optional[Request]) -> str:
    """Correlation ID set by the middleware, or a fresh one outside a request."""
    if request is not None:
        correlation_id = getattr(request.state, "correlation_id", None)
        if correlation_id:
            return correlation_id
    return str(uuid4())


def _as_data(data: Any) -> Dict[str, Any]:
    if data is None:
        return {}
    if isinstance(data, BaseModel):
        return data.model_dump(mode="json")
    if isinstance(data, dict):
        return data
    if isinstance(data, (list, tuple)):
        return {"items": [_as_data(item) if isinstance(item, BaseModel) else item for item in data]}
    return {"value": data}


def create_api_response(
    data: Any,
    message: str = "Operation successful",
    status: bool = True,
    request: Optional[Request] = None,
    api_version: str = "v1"
) -> Dict[str, Any]:
    """Wrap ``data`` in the standard envelope.

    Models are dumped, lists become ``{"items": [...]}`` and scalars
    ``{"value": ...}``.
    """
    response = ApiResponse(
        status=status,
        message=message,
        data=_as_data(data),
        meta=ResponseMeta(
            timestamp=datetime.now(timezone.utc),
            request_id=request_id_for(request),
            api_version=api_version,
        ),
    )
    return response.model_dump(mode="json")


def create_error_detail(
    title: str,
    status: int,
    detail: str,
    request: Optional[Request] = None,
    instance: Optional[str] = None
) -> ErrorDetail:
    return ErrorDetail(
        title=title,
        status=status,
        detail=detail,
        instance=instance or (request.url.path if request else None),
        request_id=request_id_for(request),
        timestamp=datetime.now(timezone.utc)
    )


def raise_problem(request: Request, status_code: int, title: str, detail: str) -> NoReturn:
    """Abort the request with a problem-details body."""
    error_detail = create_error_detail(title=title, status=status_code, detail=detail, request=request)
    raise HTTPException(status_code=status_code, detail=error_detail.model_dump(mode="json"))
