"""
Transfers router — moving money between the caller's own cards.

Endpoints:
  POST /api/transfers/own                — Transfer between two of my cards
  GET  /api/transfers/my?direction=      — My outgoing or incoming transfers
  GET  /api/transfers/{transaction_id}   — One transfer (owner of either card or admin)

Card numbers are sent in clear in the request body and never echoed back;
responses carry masked numbers only.
"""

from typing import Literal

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from bankcards.context import CallContext
from bankcards.database import get_db, get_read_db
from bankcards.dependencies import get_call_context
from bankcards.pagination import PageRequest
from bankcards.schemas.common import PageResponse
from bankcards.schemas.transaction import TransactionResponse, TransferRequest
from bankcards.services import transfer_service

router = APIRouter()


@router.post(
    "/own",
    response_model=TransactionResponse,
    summary="Transfer between my own cards",
)
async def transfer_between_own_cards(
    request: TransferRequest,
    ctx: CallContext = Depends(get_call_context),
    db: AsyncSession = Depends(get_db),
):
    """
    Move money from one of my cards to another.

    Both cards must belong to me, be ACTIVE and not past their
    expiration date, and the source card must cover the amount.
    The debit, the credit and the transfer record are one atomic unit.
    """
    txn = await transfer_service.transfer_between_own_cards(db=db, ctx=ctx, request=request)
    return TransactionResponse.from_transaction(txn)


@router.get(
    "/my",
    response_model=PageResponse[TransactionResponse],
    summary="List my transfers",
)
async def list_my_transfers(
    direction: Literal["outgoing", "incoming"] = Query("outgoing"),
    page: int = Query(0, ge=0),
    size: int = Query(20, ge=1, le=100),
    sort: str | None = Query(None),
    ctx: CallContext = Depends(get_call_context),
    db: AsyncSession = Depends(get_read_db),
):
    result = await transfer_service.list_my_transactions(
        db=db,
        ctx=ctx,
        page_request=PageRequest(page=page, size=size, sort=sort),
        direction=direction,
    )
    return PageResponse.from_page(result.map(TransactionResponse.from_transaction))


@router.get(
    "/{transaction_id}",
    response_model=TransactionResponse,
    summary="Get a transfer",
)
async def get_transfer(
    transaction_id: str,
    ctx: CallContext = Depends(get_call_context),
    db: AsyncSession = Depends(get_read_db),
):
    txn = await transfer_service.get_transaction(db=db, ctx=ctx, transaction_id=transaction_id)
    return TransactionResponse.from_transaction(txn)
