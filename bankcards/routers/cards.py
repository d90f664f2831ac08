"""
Cards router — issuance, retrieval, status changes and deletion.

Endpoints:
  POST   /api/cards                      — Issue a card to a user (admin)
  GET    /api/cards/my                   — The caller's own cards (paged)
  GET    /api/cards/expiring?before=     — Cards expiring before a date (admin)
  GET    /api/cards?status=&userId=      — All cards, optionally filtered (admin)
  GET    /api/cards/{id}                 — One card (owner or admin)
  PATCH  /api/cards/{id}/status?status=  — Block / unblock / expire (owner or admin)
  DELETE /api/cards/{id}                 — Delete a card (admin)

Card numbers are never returned, not even encrypted; responses carry
only the masked number built from the last four digits.
"""

from datetime import date

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from bankcards.context import CallContext
from bankcards.database import get_db, get_read_db
from bankcards.dependencies import get_call_context, require_admin
from bankcards.models.card import CardStatus
from bankcards.pagination import PageRequest
from bankcards.schemas.card import CardCreateRequest, CardResponse
from bankcards.schemas.common import PageResponse
from bankcards.services import card_service

router = APIRouter()


@router.post(
    "",
    response_model=CardResponse,
    summary="Issue a card",
    dependencies=[Depends(require_admin)],
)
async def issue_card(
    request: CardCreateRequest,
    db: AsyncSession = Depends(get_db),
):
    """
    Issue a new card to an existing user.

    - The card number must be 16 digits and pass the Luhn check
    - The same card number can't be issued twice
    - The number is encrypted at rest; only the last four digits are shown
    """
    card = await card_service.issue_card(db=db, request=request)
    return CardResponse.from_card(card)


@router.get(
    "/my",
    response_model=PageResponse[CardResponse],
    summary="List my cards",
)
async def list_my_cards(
    page: int = Query(0, ge=0),
    size: int = Query(10, ge=1, le=100),
    sort: str | None = Query(None),
    ctx: CallContext = Depends(get_call_context),
    db: AsyncSession = Depends(get_read_db),
):
    result = await card_service.list_own_cards(
        db=db,
        ctx=ctx,
        page_request=PageRequest(page=page, size=size, sort=sort),
    )
    return PageResponse.from_page(result.map(CardResponse.from_card))


@router.get(
    "/expiring",
    response_model=list[CardResponse],
    summary="List cards expiring before a date",
    dependencies=[Depends(require_admin)],
)
async def list_expiring_cards(
    before: date | None = Query(None),
    db: AsyncSession = Depends(get_read_db),
):
    """Cards whose expiration date is strictly before `before` (default: today)."""
    cards = await card_service.list_cards_expiring_before(db=db, before=before or date.today())
    return [CardResponse.from_card(card) for card in cards]


@router.get(
    "",
    response_model=PageResponse[CardResponse],
    summary="List all cards",
    dependencies=[Depends(require_admin)],
)
async def list_all_cards(
    page: int = Query(0, ge=0),
    size: int = Query(20, ge=1, le=100),
    sort: str | None = Query(None),
    card_status: CardStatus | None = Query(None, alias="status"),
    user_id: int | None = Query(None, alias="userId", gt=0),
    db: AsyncSession = Depends(get_read_db),
):
    result = await card_service.list_all_cards(
        db=db,
        page_request=PageRequest(page=page, size=size, sort=sort),
        status=card_status,
        user_id=user_id,
    )
    return PageResponse.from_page(result.map(CardResponse.from_card))


@router.get(
    "/{card_id}",
    response_model=CardResponse,
    summary="Get a card (masked)",
)
async def get_card(
    card_id: int,
    ctx: CallContext = Depends(get_call_context),
    db: AsyncSession = Depends(get_read_db),
):
    card = await card_service.get_card(db=db, ctx=ctx, card_id=card_id)
    return CardResponse.from_card(card)


@router.patch(
    "/{card_id}/status",
    response_model=CardResponse,
    summary="Change a card's status",
)
async def update_card_status(
    card_id: int,
    new_status: CardStatus = Query(..., alias="status"),
    ctx: CallContext = Depends(get_call_context),
    db: AsyncSession = Depends(get_db),
):
    """
    Set the card status to ACTIVE, BLOCKED or EXPIRED.

    A card that is already past its expiration date can't be changed.
    """
    card = await card_service.update_card_status(
        db=db,
        ctx=ctx,
        card_id=card_id,
        new_status=new_status,
    )
    return CardResponse.from_card(card)


@router.delete(
    "/{card_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete a card",
    dependencies=[Depends(require_admin)],
)
async def delete_card(
    card_id: int,
    ctx: CallContext = Depends(get_call_context),
    db: AsyncSession = Depends(get_db),
):
    await card_service.delete_card(db=db, ctx=ctx, card_id=card_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
