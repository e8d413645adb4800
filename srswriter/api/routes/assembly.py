"""
Prompt assembly preview endpoints.

Provides REST endpoints for:
- Assembling a specialist prompt from a context bag
- Building the orchestrator planning prompt
- Checking template consistency and cache statistics
- Listing discovered specialists
- Previewing a tool execution report

Nothing here calls a model; every response is the text a model would receive.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel, Field

from srswriter.prompts.errors import InvalidContextError, InvalidRoleNameError, MandatoryTemplateMissingError
from srswriter.prompts.orchestrator import detect_intent
from srswriter.prompts.types import RoleCategory, RoleIdentifier, assembly_context_from_dict
from srswriter.results.formatter import build_report, tool_result_from_dict

logger = logging.getLogger(__name__)

router = APIRouter(tags=["assembly"])


# =============================================================================
# Pydantic Models
# =============================================================================


class AssembleRequest(BaseModel):
    """Request for the assemble endpoint."""

    role: str = Field(..., description="Specialist id (e.g., 'fr_writer')")
    category: str = Field(default="content", description="Role category: content or process")
    context: Dict[str, Any] = Field(
        default_factory=dict,
        description="Context bag (userRequirements, workflow_mode, structuredContext, ...)",
    )


class AssembleResponse(BaseModel):
    """Assembled prompt plus metadata."""

    content: str
    content_hash: str
    role_name: str
    layout_version: str
    base_templates: List[str]
    char_count: int
    validation: Optional[Dict[str, Any]] = None


class OrchestratorRequest(BaseModel):
    """Request for the orchestrator planning prompt."""

    user_input: str
    history: Optional[str] = None
    tool_results: Optional[str] = None
    knowledge: Optional[str] = None


class OrchestratorResponse(BaseModel):
    content: str
    caller_category: str


class SpecialistItem(BaseModel):
    """Summary of a specialist for listing."""

    id: str
    name: str
    category: str
    enabled: bool
    template_key: str
    template_overrides: Optional[Dict[str, Any]] = None


class SpecialistListResponse(BaseModel):
    specialists: List[SpecialistItem]
    count: int


class TemplateStatsResponse(BaseModel):
    cached_count: int
    average_size: float
    categories: Dict[str, int]
    search_dirs: List[str]


class FormatResultsRequest(BaseModel):
    results: List[Dict[str, Any]]


class FormatResultsResponse(BaseModel):
    report: str
    summary: str
    details: List[str]


# =============================================================================
# Helper Functions
# =============================================================================


def _get_prompt_service():
    """Get the prompt service (lazy import avoids a cycle with server.py)."""
    from ..server import get_prompt_service

    return get_prompt_service()


def _missing_template_error(e: MandatoryTemplateMissingError) -> HTTPException:
    return HTTPException(
        status_code=503,
        detail={
            "error": "mandatory_template_missing",
            "message": str(e),
            "key": e.key,
            "searched_paths": list(e.searched_paths),
        },
    )


# =============================================================================
# Endpoints
# =============================================================================


@router.post("/prompts/assemble", response_model=AssembleResponse)
async def assemble_prompt(request: AssembleRequest):
    """Assemble the ten-section prompt for a specialist.

    Raises:
        HTTPException 400: The context has neither a user request nor a current step.
        HTTPException 400: The role name is not a plain identifier.
        HTTPException 503: The master template is missing.
    """
    service = _get_prompt_service()
    try:
        role = RoleIdentifier.of(request.role, request.category)
    except InvalidRoleNameError as e:
        raise HTTPException(status_code=400, detail={"error": "invalid_role", "message": str(e)})
    try:
        context = assembly_context_from_dict(request.context)
    except InvalidContextError as e:
        raise HTTPException(status_code=400, detail={"error": "invalid_context", "message": str(e)})

    try:
        result = await service.engine.assemble_with_metadata(role, context)
    except MandatoryTemplateMissingError as e:
        logger.error("Assembly for %s failed: %s", role.name, e)
        raise _missing_template_error(e)

    return AssembleResponse(
        content=result.content,
        content_hash=result.content_hash,
        role_name=result.role_name,
        layout_version=result.layout_version,
        base_templates=list(result.base_templates),
        char_count=len(result.content),
        validation=result.validation.to_dict() if result.validation else None,
    )


@router.post("/prompts/orchestrator", response_model=OrchestratorResponse)
async def orchestrator_prompt(request: OrchestratorRequest):
    """Build the orchestrator planning prompt for one user message."""
    service = _get_prompt_service()
    try:
        content = service.orchestrator.build_planning_prompt(
            request.user_input,
            history=request.history,
            tool_results=request.tool_results,
            knowledge=request.knowledge,
        )
    except MandatoryTemplateMissingError as e:
        logger.error("Orchestrator prompt failed: %s", e)
        raise _missing_template_error(e)
    return OrchestratorResponse(content=content, caller_category=detect_intent(request.user_input).value)


@router.get("/templates/validate")
async def validate_templates():
    """Template consistency report (status PASS/FAIL plus issues)."""
    service = _get_prompt_service()
    report = service.engine.validate_template_consistency()
    return report.to_dict()


@router.get("/templates/stats", response_model=TemplateStatsResponse)
async def template_stats():
    stats = _get_prompt_service().engine.template_stats()
    return TemplateStatsResponse(
        cached_count=stats.cached_count,
        average_size=stats.average_size,
        categories=dict(stats.categories),
        search_dirs=list(stats.search_dirs),
    )


@router.post("/templates/reload")
async def reload_templates():
    """Drop template caches so edited files are picked up."""
    _get_prompt_service().reload()
    return {"status": "reloaded"}


@router.get("/specialists", response_model=SpecialistListResponse)
async def list_specialists(category: Optional[str] = None, enabled: Optional[bool] = None):
    """List specialists discovered from the template tree.

    Args:
        category: Optional filter, content or process.
        enabled: Optional filter on the enabled flag.
    """
    role_category = None
    if category is not None:
        try:
            role_category = RoleCategory(category)
        except ValueError:
            raise HTTPException(
                status_code=400,
                detail={"error": "invalid_category", "message": f"Unknown category: {category}"},
            )

    registry = _get_prompt_service().registry
    specialists = registry.list_specialists(category=role_category, enabled=enabled)
    return SpecialistListResponse(
        specialists=[SpecialistItem(**s.to_dict()) for s in specialists],
        count=len(specialists),
    )


@router.post("/results/format", response_model=FormatResultsResponse)
async def format_results(request: FormatResultsRequest):
    """Render a tool execution report the way the chat surface shows it."""
    report = build_report([tool_result_from_dict(r) for r in request.results])
    return FormatResultsResponse(report=report.report, summary=report.summary, details=report.details)
