"""Autofill endpoints: one parameterized route for every report section."""

from typing import Annotated, Optional
from uuid import UUID

from fastapi import APIRouter, Body, Depends, Query, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from trajectplan.core.config import settings
from trajectplan.core.database import get_async_session as get_session
from trajectplan.core.exceptions import (
    CompletionError,
    ConfigurationError,
    PipelineError,
    SectionNotFoundError,
)
from trajectplan.core.llm_client import CompletionClient, create_completion_client
from trajectplan.repositories.document_store import SqlDocumentStore
from trajectplan.schemas.autofill import AutofillData, AutofillRequest, SectionInfo
from trajectplan.schemas.common import ApiResponse
from trajectplan.services.autofill.orchestrator import AutofillOrchestrator, RunOptions
from trajectplan.services.autofill.sections import SectionRegistry
from trajectplan.services.storage.storage_service import StorageService
from trajectplan.utils.logging import get_logger
from trajectplan.utils.responses import create_api_response, raise_problem

LOGGER = get_logger(__name__)

router = APIRouter()


def get_section_registry() -> SectionRegistry:
    return SectionRegistry()


def get_completion_client() -> CompletionClient:
    return create_completion_client(settings.llm)


async def get_orchestrator(
    request: Request,
    db_session: Annotated[AsyncSession, Depends(get_session)],
    sections: Annotated[SectionRegistry, Depends(get_section_registry)],
) -> AutofillOrchestrator:
    try:
        completion_client = get_completion_client()
    except ConfigurationError as e:
        LOGGER.error(f"Completion client misconfigured: {e}")
        raise_problem(
            request,
            status.HTTP_503_SERVICE_UNAVAILABLE,
            "Completion Service Unavailable",
            "The completion provider is not configured",
        )
    return AutofillOrchestrator(
        document_store=SqlDocumentStore(db_session),
        blob_store=StorageService(),
        completion_client=completion_client,
        sections=sections,
    )


@router.get(
    "/sections",
    response_model=ApiResponse,
    summary="List autofill sections",
    operation_id="list_autofill_sections",
)
async def list_sections(
    request: Request,
    sections: Annotated[SectionRegistry, Depends(get_section_registry)],
) -> ApiResponse:
    """List the report sections that can be autofilled."""
    items = [
        SectionInfo(
            name=section.name,
            description=section.description,
            source_mode=section.source_mode.value,
            wanted_categories=list(section.wanted_categories),
            fields=section.field_names,
        )
        for section in sections
    ]
    return create_api_response(
        data=items,
        message=f"{len(items)} sections available",
        request=request
    )


@router.post(
    "/{section}",
    response_model=ApiResponse,
    summary="Autofill one report section",
    operation_id="autofill_section",
)
async def autofill_section(
    request: Request,
    section: str,
    employee_id: Annotated[str, Query(alias="employeeId", description="Employee (subject) ID")],
    orchestrator: Annotated[AutofillOrchestrator, Depends(get_orchestrator)],
    payload: Annotated[Optional[AutofillRequest], Body()] = None,
) -> ApiResponse:
    """Run the autofill pipeline for one section of one employee."""
    try:
        subject_id = UUID(employee_id)
    except ValueError:
        raise_problem(request, status.HTTP_400_BAD_REQUEST, "Invalid Employee ID", "employeeId must be a UUID")

    payload = payload or AutofillRequest()
    options = RunOptions(authoritative_values=payload.authoritative_values, persist=payload.persist)

    try:
        result = await orchestrator.run_section(subject_id, section, options)
    except SectionNotFoundError as e:
        raise_problem(request, status.HTTP_404_NOT_FOUND, "Section Not Found", str(e))
    except CompletionError as e:
        LOGGER.error(
            f"Completion failed for section {section}: {e}",
            extra={"employee_id": employee_id, "section": section}
        )
        raise_problem(
            request,
            status.HTTP_502_BAD_GATEWAY,
            "Completion Failed",
            "The completion provider failed or returned an invalid response",
        )
    except PipelineError as e:
        LOGGER.error(
            f"Autofill pipeline failed for section {section}: {e}",
            exc_info=True,
            extra={"employee_id": employee_id, "section": section}
        )
        raise_problem(
            request,
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            "Autofill Failed",
            "The autofill pipeline could not complete",
        )

    if result.empty:
        data = AutofillData(section=result.section, warnings=result.warnings, empty_reason=result.reason)
        return create_api_response(data=data, message=result.message, request=request)

    data = AutofillData(
        section=result.section,
        details=result.fields,
        autofilled_fields=result.filled_field_names,
        persisted=result.persisted,
        sources=result.sources,
        warnings=result.warnings,
    )
    message = f"Autofilled {len(result.filled_field_names)} fields"
    if not result.persisted and payload.persist:
        message += " (not saved)"
    return create_api_response(data=data, message=message, request=request)
