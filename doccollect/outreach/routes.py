"""
Outreach Routes

API endpoints for running follow-up orchestration and inspecting the
per-customer state it keeps.
"""

from typing import Any, Dict, List, Optional
from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from doccollect.config import settings
from doccollect.database import get_db

from .channels import get_flow
from .engine import OutreachOrchestrator, get_outreach_orchestrator
from .exceptions import OutreachConfigError, UnknownFlowError
from .schemas import Customer, DocumentObligation
from .sql_store import SQLEffectivenessStore, SQLEscalationStore, SQLHistoryStore

router = APIRouter(prefix="/outreach", tags=["Outreach"])


async def get_orchestrator(
    db: AsyncSession = Depends(get_db),
    shared: OutreachOrchestrator = Depends(get_outreach_orchestrator),
) -> OutreachOrchestrator:
    """
    Orchestrator for the current request.

    With OUTREACH_STORE=sql the stores live on the request's session and
    each orchestration commits before releasing the customer's lock.
    """
    if settings.OUTREACH_STORE != "sql":
        return shared

    return shared.with_stores(
        history=SQLHistoryStore(db, retention_limit=settings.HISTORY_RETENTION_LIMIT),
        effectiveness=SQLEffectivenessStore(db),
        escalations=SQLEscalationStore(db),
        commit=db.commit,
    )


# =============================================================================
# SCHEMAS
# =============================================================================

class OrchestrateRequest(BaseModel):
    """Request to run one orchestration step."""
    customer: Customer
    document: DocumentObligation
    flow_type: Optional[str] = None


class HistoryResponse(BaseModel):
    customer_id: str
    attempts: List[Dict[str, Any]]
    total: int


class EscalationsResponse(BaseModel):
    customer_id: str
    escalations: List[Dict[str, Any]]


class ResolveEscalationResponse(BaseModel):
    customer_id: str
    escalation_id: str
    resolved: bool


# =============================================================================
# ENDPOINTS
# =============================================================================

@router.post("/orchestrate")
async def orchestrate(
    request: OrchestrateRequest,
    orchestrator: OutreachOrchestrator = Depends(get_orchestrator),
) -> Dict[str, Any]:
    """Decide whether to send, defer or escalate, and act on it."""
    if request.document.customer_id != request.customer.id:
        raise HTTPException(status_code=400, detail="Document does not belong to customer")

    try:
        result = await orchestrator.orchestrate(
            request.customer,
            request.document,
            flow_type=request.flow_type,
        )
    except OutreachConfigError as e:
        raise HTTPException(status_code=400, detail=str(e))

    return result.to_dict()


@router.get("/customers/{customer_id}/history", response_model=HistoryResponse)
async def get_history(
    customer_id: str,
    orchestrator: OutreachOrchestrator = Depends(get_orchestrator),
):
    """Attempt history for a customer, oldest first."""
    history = await orchestrator.get_history(customer_id)
    return HistoryResponse(
        customer_id=customer_id,
        attempts=[record.to_dict() for record in history],
        total=len(history),
    )


@router.get("/customers/{customer_id}/escalations", response_model=EscalationsResponse)
async def get_escalations(
    customer_id: str,
    orchestrator: OutreachOrchestrator = Depends(get_orchestrator),
):
    """Open escalations currently holding back outreach for a customer."""
    entries = await orchestrator.get_open_escalations(customer_id)
    return EscalationsResponse(
        customer_id=customer_id,
        escalations=[entry.to_dict() for entry in entries],
    )


@router.post(
    "/customers/{customer_id}/escalations/{escalation_id}/resolve",
    response_model=ResolveEscalationResponse,
)
async def resolve_escalation(
    customer_id: str,
    escalation_id: str,
    orchestrator: OutreachOrchestrator = Depends(get_orchestrator),
):
    """Close an escalation once someone has handled it."""
    resolved = await orchestrator.resolve_escalation(customer_id, escalation_id)
    if not resolved:
        raise HTTPException(status_code=404, detail="Open escalation not found")

    return ResolveEscalationResponse(
        customer_id=customer_id,
        escalation_id=escalation_id,
        resolved=True,
    )


@router.get("/flows/{flow_type}")
async def get_flow_definition(
    flow_type: str,
    orchestrator: OutreachOrchestrator = Depends(get_orchestrator),
) -> Dict[str, Any]:
    """Channel catalog and escalation rules of a flow."""
    try:
        flow = get_flow(flow_type, orchestrator.flows)
    except UnknownFlowError as e:
        raise HTTPException(status_code=404, detail=str(e))

    return {
        "name": flow.name,
        "max_attempts": flow.max_attempts,
        "learning_rate": flow.auto_adjustment.learning_rate,
        "channels": [
            {
                "type": c.type.value,
                "priority": c.priority,
                "wait_time_hours": c.wait_time_hours,
                "templates": list(c.templates),
                "fallback_channel": c.fallback_channel.value if c.fallback_channel else None,
                "thresholds": {
                    "urgency": c.thresholds.urgency,
                    "sentiment": c.thresholds.sentiment,
                    "engagement": c.thresholds.engagement,
                },
            }
            for c in flow.channels
        ],
        "escalation_rules": [
            {
                "action": r.action.value,
                "priority": r.priority,
                "description": r.description,
                "cooldown_hours": r.cooldown_hours,
                "requires_approval": r.requires_approval,
                "active": r.active,
            }
            for r in sorted(flow.escalation_rules, key=lambda r: r.priority)
        ],
    }
