"""Lead intake, match preview and dispatch endpoints."""

from fastapi import APIRouter, Header, Query, Response

from leadrouter.api.dependencies import DispatcherDep, LeadStoreDep, SettingsDep
from leadrouter.api.exceptions import InvalidRequestError
from leadrouter.api.middleware.auth import OperatorContextDep
from leadrouter.api.models.audit import AuditEntryResponse, HistoryResponse
from leadrouter.api.models.leads import (
    BulkDispatchRequest,
    BulkDispatchResponse,
    DispatchRequest,
    LeadListResponse,
    LeadResponse,
    LeadUpsert,
)
from leadrouter.observability.logging import get_logger
from leadrouter.routing.errors import LeadNotFoundError
from leadrouter.routing.models import AssignmentResult, MatchPreview

logger = get_logger(__name__)

router = APIRouter(prefix="/leads")


def _parse_if_match(value: str | None) -> int | None:
    """Lead version from an If-Match header (``"3"``, ``W/"3"`` or ``3``)."""
    if value is None:
        return None
    tag = value.strip().removeprefix("W/").strip('"')
    try:
        return int(tag)
    except ValueError:
        raise InvalidRequestError(f"If-Match must carry a lead version, got {value!r}") from None


@router.get("", response_model=LeadListResponse)
async def list_leads(
    operator: OperatorContextDep,  # noqa: ARG001
    lead_store: LeadStoreDep,
    unassigned: bool = Query(default=False, description="Only leads with no office or consultant"),
    office_id: str | None = Query(default=None, description="Filter by assigned office"),
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
) -> LeadListResponse:
    """List leads oldest first."""
    leads = await lead_store.list_leads(
        unassigned_only=unassigned,
        office_id=office_id,
        limit=limit + 1,
        offset=offset,
    )
    return LeadListResponse(
        items=[LeadResponse.from_lead(lead) for lead in leads[:limit]],
        limit=limit,
        offset=offset,
        has_more=len(leads) > limit,
    )


@router.post("/dispatch", response_model=BulkDispatchResponse)
async def dispatch_leads(
    request: BulkDispatchRequest,
    operator: OperatorContextDep,
    dispatcher: DispatcherDep,
    settings: SettingsDep,
    idempotency_key: str | None = Header(default=None, alias="Idempotency-Key"),
) -> BulkDispatchResponse:
    """Dispatch several leads with the same mode.

    Each lead is dispatched on its own; failures are reported per lead.
    """
    if len(request.lead_ids) > settings.dispatch.max_bulk_size:
        raise InvalidRequestError(
            f"At most {settings.dispatch.max_bulk_size} leads can be dispatched at once"
        )
    items = await dispatcher.dispatch_many(
        request.lead_ids,
        request.mode,
        actor_id=operator.actor_id,
        idempotency_key=idempotency_key,
    )
    return BulkDispatchResponse.from_items(items)


@router.put("/{lead_id}", response_model=LeadResponse)
async def upsert_lead(
    lead_id: str,
    request: LeadUpsert,
    response: Response,
    operator: OperatorContextDep,  # noqa: ARG001
    lead_store: LeadStoreDep,
) -> LeadResponse:
    """Create or update a lead from intake. Assignment fields are kept."""
    lead = await lead_store.save_lead(request.to_lead(lead_id))
    logger.info("lead_saved", lead_id=lead.id, version=lead.version)
    response.headers["ETag"] = f'"{lead.version}"'
    return LeadResponse.from_lead(lead)


@router.get("/{lead_id}", response_model=LeadResponse)
async def get_lead(
    lead_id: str,
    response: Response,
    operator: OperatorContextDep,  # noqa: ARG001
    lead_store: LeadStoreDep,
) -> LeadResponse:
    """Get a lead by ID. The ETag carries its version."""
    lead = await lead_store.get_lead(lead_id)
    if lead is None:
        raise LeadNotFoundError(lead_id)
    response.headers["ETag"] = f'"{lead.version}"'
    return LeadResponse.from_lead(lead)


@router.get("/{lead_id}/history", response_model=HistoryResponse)
async def get_lead_history(
    lead_id: str,
    operator: OperatorContextDep,  # noqa: ARG001
    dispatcher: DispatcherDep,
) -> HistoryResponse:
    """Get a lead's assignment history."""
    entries = await dispatcher.history(lead_id)
    return HistoryResponse(entries=[AuditEntryResponse.from_entry(e) for e in entries])


@router.get("/{lead_id}/preview", response_model=MatchPreview)
async def preview_lead(
    lead_id: str,
    operator: OperatorContextDep,  # noqa: ARG001
    dispatcher: DispatcherDep,
) -> MatchPreview:
    """Show which rule automatic dispatch would pick, without assigning."""
    return await dispatcher.preview(lead_id)


@router.post(
    "/{lead_id}/dispatch",
    response_model=AssignmentResult,
    responses={
        200: {
            "description": (
                "Dispatch outcome. outcome=unchanged when the resolved target is "
                "already the lead's assignment: no write and no history entry"
            )
        }
    },
)
async def dispatch_lead(
    lead_id: str,
    operator: OperatorContextDep,
    dispatcher: DispatcherDep,
    request: DispatchRequest | None = None,
    idempotency_key: str | None = Header(default=None, alias="Idempotency-Key"),
    if_match: str | None = Header(default=None, alias="If-Match"),
) -> AssignmentResult:
    """Dispatch one lead automatically or to an operator-chosen target.

    Only outcome=assigned changes the lead and adds a history entry. A
    manual dispatch to the lead's current office and consultant returns
    outcome=unchanged and records nothing.
    """
    body = request or DispatchRequest()
    return await dispatcher.dispatch(
        lead_id,
        body.mode,
        actor_id=operator.actor_id,
        idempotency_key=idempotency_key,
        expected_version=_parse_if_match(if_match),
    )
