# meatshare/marketplace/api/purchases_api.py
from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from meatshare.auth.session import AuthSession, get_auth_session
from meatshare.db.core import get_db
from meatshare.integrations.payments.stripe.payment_gateway import GatewayError
from meatshare.marketplace.dtos import (
    PurchaseCancelRequest,
    PurchaseDTO,
    PurchaseListResponse,
    purchase_to_dto,
)
from meatshare.marketplace.errors import (
    PurchaseAccessDeniedError,
    PurchaseNotFoundError,
)
from meatshare.marketplace.purchase_state import IllegalTransitionError
from meatshare.marketplace.services.purchase_query_service import PurchaseQueryService
from meatshare.marketplace.services.purchase_status_service import (
    PurchaseStatusService,
)

router = APIRouter(prefix="/api", tags=["purchases"])


# ==============================
# Buyer
# ==============================
@router.get("/buyer/purchases", response_model=PurchaseListResponse)
def list_buyer_purchases(
    session: AuthSession = Depends(get_auth_session),
    db: Session = Depends(get_db),
):
    rows = PurchaseQueryService(db).list_buyer_purchases(session)
    return PurchaseListResponse(purchases=[purchase_to_dto(p) for p in rows])


# ==============================
# Farmer
# ==============================
@router.get("/farmer/purchases", response_model=PurchaseListResponse)
def list_farmer_purchases(
    session: AuthSession = Depends(get_auth_session),
    db: Session = Depends(get_db),
):
    rows = PurchaseQueryService(db).list_farmer_purchases(session)
    return PurchaseListResponse(purchases=[purchase_to_dto(p) for p in rows])


def _run_transition(fn):
    try:
        return fn()
    except PurchaseNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except PurchaseAccessDeniedError as e:
        raise HTTPException(status_code=403, detail=str(e))
    except IllegalTransitionError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except GatewayError as e:
        raise HTTPException(status_code=502, detail=f"refund failed: {e}")


@router.post("/farmer/purchases/{purchase_id}/complete", response_model=PurchaseDTO)
def complete_purchase(
    purchase_id: str,
    session: AuthSession = Depends(get_auth_session),
    db: Session = Depends(get_db),
):
    """Fulfilment done: confirmed -> completed."""
    service = PurchaseStatusService(db)
    purchase = _run_transition(lambda: service.complete_purchase(session, purchase_id))
    return purchase_to_dto(purchase)


@router.post("/farmer/purchases/{purchase_id}/cancel", response_model=PurchaseDTO)
def cancel_purchase(
    purchase_id: str,
    body: PurchaseCancelRequest,
    session: AuthSession = Depends(get_auth_session),
    db: Session = Depends(get_db),
):
    """
    pending / confirmed -> cancelled. A confirmed purchase is refunded and
    its unit goes back into inventory.
    """
    service = PurchaseStatusService(db)
    purchase = _run_transition(
        lambda: service.cancel_purchase(session, purchase_id, note=body.note)
    )
    return purchase_to_dto(purchase)
