"""Distribution rule management endpoints."""

from uuid import UUID

from fastapi import APIRouter, Query, Response

from leadrouter.api.dependencies import AuditLogDep, RuleStoreDep
from leadrouter.api.middleware.auth import OperatorContextDep
from leadrouter.api.models.audit import AuditEntryResponse, HistoryResponse
from leadrouter.api.models.pagination import PaginatedResponse
from leadrouter.api.models.rules import (
    RuleCreate,
    RuleListResponse,
    RuleReorderRequest,
    RuleResponse,
    RuleUpdate,
)
from leadrouter.observability.logging import get_logger
from leadrouter.routing.errors import RuleNotFoundError
from leadrouter.routing.filtering import filter_rules
from leadrouter.routing.models import PriorityBand

logger = get_logger(__name__)

router = APIRouter(prefix="/rules")


@router.get("", response_model=PaginatedResponse[RuleResponse])
async def list_rules(
    operator: OperatorContextDep,
    rule_store: RuleStoreDep,
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    search: str | None = Query(default=None, description="Match destination, source or priority"),
    office_id: str | None = Query(default=None, description="Filter by target office"),
    band: PriorityBand | None = Query(default=None, description="Filter by priority band"),
) -> PaginatedResponse[RuleResponse]:
    """List rules in evaluation order."""
    logger.debug("list_rules_request", actor_id=operator.actor_id)

    rules = filter_rules(
        await rule_store.list_rules(),
        search=search,
        office_id=office_id,
        band=band,
    )
    page = rules[offset : offset + limit]
    return PaginatedResponse[RuleResponse].create(
        items=[RuleResponse.from_rule(rule) for rule in page],
        total=len(rules),
        limit=limit,
        offset=offset,
    )


@router.post("", response_model=RuleResponse, status_code=201)
async def create_rule(
    request: RuleCreate,
    operator: OperatorContextDep,
    rule_store: RuleStoreDep,
) -> RuleResponse:
    """Create a rule at the end of its priority group."""
    rule = await rule_store.create(request.to_draft(), actor_id=operator.actor_id)
    return RuleResponse.from_rule(rule)


@router.post("/reorder", response_model=RuleListResponse)
async def reorder_rules(
    request: RuleReorderRequest,
    operator: OperatorContextDep,
    rule_store: RuleStoreDep,
) -> RuleListResponse:
    """Set the evaluation order of rules that share a priority."""
    rules = await rule_store.reorder(request.rule_ids, actor_id=operator.actor_id)
    return RuleListResponse(rules=[RuleResponse.from_rule(rule) for rule in rules])


@router.get("/{rule_id}", response_model=RuleResponse)
async def get_rule(
    rule_id: UUID,
    operator: OperatorContextDep,  # noqa: ARG001
    rule_store: RuleStoreDep,
) -> RuleResponse:
    """Get a rule by ID."""
    rule = await rule_store.get_rule(rule_id)
    if rule is None:
        raise RuleNotFoundError(rule_id)
    return RuleResponse.from_rule(rule)


@router.put("/{rule_id}", response_model=RuleResponse)
async def update_rule(
    rule_id: UUID,
    request: RuleUpdate,
    operator: OperatorContextDep,
    rule_store: RuleStoreDep,
) -> RuleResponse:
    """Update a rule. Omitted fields are unchanged."""
    rule = await rule_store.update(rule_id, request.to_patch(), actor_id=operator.actor_id)
    return RuleResponse.from_rule(rule)


@router.delete("/{rule_id}", status_code=204)
async def delete_rule(
    rule_id: UUID,
    operator: OperatorContextDep,
    rule_store: RuleStoreDep,
) -> Response:
    """Delete a rule. Its history remains available."""
    await rule_store.delete(rule_id, actor_id=operator.actor_id)
    return Response(status_code=204)


@router.get("/{rule_id}/history", response_model=HistoryResponse)
async def get_rule_history(
    rule_id: UUID,
    operator: OperatorContextDep,  # noqa: ARG001
    audit_log: AuditLogDep,
) -> HistoryResponse:
    """Get a rule's change history, including after deletion."""
    entries = await audit_log.for_rule(rule_id)
    if not entries:
        raise RuleNotFoundError(rule_id)
    return HistoryResponse(entries=[AuditEntryResponse.from_entry(e) for e in entries])
