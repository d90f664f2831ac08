"""
Card service — card issuance, retrieval, status changes and deletion.

When a card is issued:
  1. The owner is resolved by user id
  2. The 16-digit card number is checked (digits only + Luhn checksum)
  3. The number is encrypted (AES-CBC) and digested (SHA-256)
  4. The digest must not already be stored — one card per number, globally
  5. Only the last four digits are stored in plaintext (for display)

Access control:
  Every call that touches an existing card takes the caller's
  CallContext. ROLE_ADMIN may read, change and delete any card; anyone
  else may only read and change cards they own.

All functions only flush; the unit of work (get_db) commits or rolls back.
"""

import re
from datetime import date

import structlog
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from bankcards.context import CallContext, require_context
from bankcards.exceptions import (
    AccessDeniedError,
    CardAlreadyExistsError,
    CardNotFoundError,
    InvalidCardNumberError,
    OperationNotAllowedError,
    UserNotFoundError,
)
from bankcards.models.card import BankCard, CardStatus
from bankcards.pagination import Page, PageRequest
from bankcards.repositories import CardRepository, TransactionRepository, UserRepository
from bankcards.schemas.card import CardCreateRequest
from bankcards.security import encrypt_card_number, hash_card_number

logger = structlog.get_logger()

_CARD_NUMBER_RE = re.compile(r"[0-9]{16}")


def is_valid_card_number(card_number: str | None) -> bool:
    """
    Exactly sixteen ASCII digits that pass the Luhn checksum.

    Luhn: from the rightmost digit, double every second digit (subtracting
    9 when the product exceeds 9) and require the total to be divisible by 10.
    """
    if card_number is None or not _CARD_NUMBER_RE.fullmatch(card_number):
        return False

    total = 0
    for position, char in enumerate(reversed(card_number)):
        digit = int(char)
        if position % 2 == 1:
            digit *= 2
            if digit > 9:
                digit -= 9
        total += digit
    return total % 10 == 0


def validate_card_number(card_number: str | None) -> None:
    if not is_valid_card_number(card_number):
        raise InvalidCardNumberError()


def _check_access(ctx: CallContext, card: BankCard) -> None:
    if not ctx.is_admin and card.user.username != ctx.username:
        raise AccessDeniedError("Access denied to this card")


async def _get_card_or_404(cards: CardRepository, card_id: int) -> BankCard:
    card = await cards.get_by_id(card_id)
    if card is None:
        raise CardNotFoundError(card_id)
    return card


async def issue_card(db: AsyncSession, request: CardCreateRequest) -> BankCard:
    """
    Issue a card to an existing user. The admin precondition is enforced
    at the HTTP boundary.

    Raises:
        UserNotFoundError: If request.user_id doesn't exist.
        InvalidCardNumberError: If the number fails validation.
        CardAlreadyExistsError: If a card with the same number exists,
            including one committed concurrently by another request.
    """
    users = UserRepository(db)
    cards = CardRepository(db)

    owner = await users.get_by_id(request.user_id)
    if owner is None:
        raise UserNotFoundError(f"User not found with id: {request.user_id}")

    validate_card_number(request.card_number)

    encrypted = encrypt_card_number(request.card_number)
    card_hash = hash_card_number(request.card_number)

    if await cards.exists_by_hash(card_hash):
        raise CardAlreadyExistsError()

    card = BankCard(
        card_number_encrypted=encrypted,
        card_number_hash=card_hash,
        last_four_digits=request.card_number[-4:],
        card_holder_name=request.card_holder_name,
        expiration_date=request.expiration_date,
        balance=request.initial_balance,
        user_id=owner.id,
        user=owner,
    )
    try:
        card = await cards.save(card)
    except IntegrityError:
        # A concurrent issue of the same number won the unique digest index
        raise CardAlreadyExistsError()

    logger.info(
        "card_issued",
        card_id=card.id,
        user_id=owner.id,
        last4=card.last_four_digits,
    )
    return card


async def get_card(db: AsyncSession, ctx: CallContext | None, card_id: int) -> BankCard:
    """
    Get a single card, verifying the caller may see it.

    Raises:
        CardNotFoundError: If the card doesn't exist.
        AccessDeniedError: If the caller is neither admin nor owner.
    """
    ctx = require_context(ctx)
    card = await _get_card_or_404(CardRepository(db), card_id)
    _check_access(ctx, card)
    return card


async def list_own_cards(
    db: AsyncSession,
    ctx: CallContext | None,
    page_request: PageRequest,
) -> Page[BankCard]:
    """List the caller's own cards, one page at a time."""
    ctx = require_context(ctx)
    user = await UserRepository(db).get_by_username(ctx.username)
    if user is None:
        raise UserNotFoundError()
    return await CardRepository(db).list_by_owner(user, page_request)


async def list_all_cards(
    db: AsyncSession,
    page_request: PageRequest,
    status: CardStatus | None = None,
    user_id: int | None = None,
) -> Page[BankCard]:
    """
    [ADMIN ONLY] List every card, optionally filtered by owner and/or status.
    """
    cards = CardRepository(db)
    if user_id is not None and status is not None:
        return await cards.list_by_owner_and_status(user_id, status, page_request)
    if user_id is not None:
        return await cards.list_by_owner(user_id, page_request)
    if status is not None:
        return await cards.list_by_status(status, page_request)
    return await cards.list_all(page_request)


async def list_cards_expiring_before(db: AsyncSession, before: date) -> list[BankCard]:
    """[ADMIN ONLY] Cards whose expiration date is strictly before `before`."""
    return await CardRepository(db).list_expiring_before(before)


async def update_card_status(
    db: AsyncSession,
    ctx: CallContext | None,
    card_id: int,
    new_status: CardStatus,
) -> BankCard:
    """
    Block, unblock or expire a card.

    Raises:
        CardNotFoundError: If the card doesn't exist.
        AccessDeniedError: If the caller is neither admin nor owner.
        OperationNotAllowedError: If the card is already past its expiry date.
    """
    ctx = require_context(ctx)
    cards = CardRepository(db)
    card = await _get_card_or_404(cards, card_id)
    _check_access(ctx, card)

    if card.is_expired():
        raise OperationNotAllowedError("Cannot update status of expired card")

    previous = card.status
    card.status = new_status
    card = await cards.save(card)

    logger.info(
        "card_status_changed",
        card_id=card.id,
        old_status=previous.value,
        new_status=card.status.value,
        by=ctx.username,
    )
    return card


async def delete_card(db: AsyncSession, ctx: CallContext | None, card_id: int) -> None:
    """
    Hard-delete a card. A card that is either end of a recorded transfer
    can't be deleted.

    Raises:
        CardNotFoundError: If the card doesn't exist.
        OperationNotAllowedError: If the caller is not an admin, or the
            card has transactions.
    """
    ctx = require_context(ctx)
    cards = CardRepository(db)
    card = await _get_card_or_404(cards, card_id)

    if not ctx.is_admin:
        raise OperationNotAllowedError("Admin permission required")

    if await TransactionRepository(db).exists_by_card(card.id):
        raise OperationNotAllowedError("Card has transactions")

    await cards.delete(card)
    logger.info("card_deleted", card_id=card_id, by=ctx.username)
