from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from sqlmodel import Session
from starlette.concurrency import run_in_threadpool

from app.database import get_session
from app.services.payment_webhook import handle_provider_event
from app.services.razorpay_gateway import RazorpayGateway, get_payment_gateway

router = APIRouter()

SIGNATURE_HEADER = "x-razorpay-signature"


@router.post("/webhook")
async def razorpay_webhook(
    request: Request,
    session: Session = Depends(get_session),
    gateway: RazorpayGateway = Depends(get_payment_gateway),
):
    """
    Always answers 200. The provider retries any other status, and every
    outcome here (duplicate, unknown order, bad signature, internal error)
    is already final; see app.services.payment_webhook.
    """
    # raw bytes: the signature is computed over exactly what was sent
    raw_body = await request.body()
    signature = request.headers.get(SIGNATURE_HEADER)

    outcome = await run_in_threadpool(
        handle_provider_event, session, raw_body, signature, gateway
    )

    return JSONResponse(status_code=200, content={"status": outcome.value})
