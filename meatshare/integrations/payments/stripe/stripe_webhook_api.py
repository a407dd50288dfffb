# meatshare/integrations/payments/stripe/stripe_webhook_api.py
from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import PlainTextResponse
from sqlalchemy.orm import Session

from meatshare.db.core import get_db
from meatshare.integrations.payments.stripe.stripe_webhook_client import (
    construct_event,
)
from meatshare.integrations.payments.stripe.stripe_webhook_service import (
    StripeWebhookService,
)

router = APIRouter(prefix="/stripe", tags=["stripe_webhook"])


@router.post("/webhook", response_class=PlainTextResponse)
async def stripe_webhook(
    request: Request,
    db: Session = Depends(get_db),
) -> PlainTextResponse:
    payload = await request.body()
    sig_header = request.headers.get("Stripe-Signature", "")

    try:
        event = construct_event(payload=payload, sig_header=sig_header)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    StripeWebhookService(db).handle_event(event)
    return PlainTextResponse("ok", status_code=200)
