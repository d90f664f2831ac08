"""
Transfer service — moving money between two cards of the same owner.

THIS IS THE MOST CRITICAL FILE IN THE PROJECT. It handles:
  - Resolving both cards by the digest of their numbers
  - Ownership, status and expiry checks
  - Balance enforcement (no negative balances, ever)
  - Recording the completed transfer

Atomicity:
  The debit, the credit and the Transaction insert all happen inside the
  caller's unit of work. Nothing here commits; any exception raised before
  get_db() commits rolls back both balance changes.

Overdraft prevention:
  Both cards are re-read with row locks, always in ascending id order, so
  two transfers over the same pair of cards can't deadlock. The debit itself
  is a conditional UPDATE (... WHERE balance >= amount) so that two
  concurrent transfers from one card cannot both succeed past its balance.
  This holds on SQLite too, where SELECT ... FOR UPDATE is a no-op.

Read functions:
  list_my_transactions and get_transaction expose the transfer history
  to card owners (and to admins for single lookups).
"""

import uuid
from datetime import date
from decimal import Decimal

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from bankcards.context import CallContext, require_context
from bankcards.exceptions import (
    AccessDeniedError,
    InsufficientFundsError,
    OperationNotAllowedError,
    TransactionNotFoundError,
    TransferCardMissingError,
    UserNotFoundError,
    ValidationFailedError,
)
from bankcards.models.card import BankCard, CardStatus
from bankcards.models.transaction import Transaction, TransactionStatus
from bankcards.pagination import Page, PageRequest
from bankcards.repositories import CardRepository, TransactionRepository, UserRepository
from bankcards.schemas.transaction import TransferRequest
from bankcards.security import hash_card_number

logger = structlog.get_logger()

OUTGOING = "outgoing"
INCOMING = "incoming"


def _check_card_can_transfer(card: BankCard, today: date) -> None:
    if card.status != CardStatus.ACTIVE:
        raise OperationNotAllowedError(
            f"Card is {card.status.value.lower()}. Only active cards can perform transfers"
        )
    if card.expiration_date < today:
        raise OperationNotAllowedError("Card is expired")


async def transfer_between_own_cards(
    db: AsyncSession,
    ctx: CallContext | None,
    request: TransferRequest,
) -> Transaction:
    """
    Move request.amount from one of the caller's cards to another.

    Args:
        db: Database session (the unit of work).
        ctx: The authenticated caller.
        request: Card numbers in clear, amount and optional description.

    Returns:
        The persisted, COMPLETED Transaction.

    Raises:
        ValidationFailedError: If the amount is zero or negative.
        TransferCardMissingError: If either card number is unknown.
        OperationNotAllowedError: If a card belongs to someone else, is
            not ACTIVE, or is past its expiration date.
        InsufficientFundsError: If the source balance doesn't cover the amount.
    """
    ctx = require_context(ctx)
    amount = Decimal(request.amount)
    if amount <= 0:
        raise ValidationFailedError("Transfer amount must be positive")

    cards = CardRepository(db)
    from_hash = hash_card_number(request.from_card_number)
    to_hash = hash_card_number(request.to_card_number)

    from_card = await cards.get_by_hash(from_hash)
    if from_card is None:
        raise TransferCardMissingError("From card not found")
    to_card = await cards.get_by_hash(to_hash)
    if to_card is None:
        raise TransferCardMissingError("To card not found")

    if from_card.user.username != ctx.username or to_card.user.username != ctx.username:
        logger.info("transfer_rejected", reason="not_owner", by=ctx.username)
        raise OperationNotAllowedError("You can only transfer between your own cards")

    # Fresh, locked copies; the identity map hands back the same objects
    locked = await cards.lock_for_update([from_card.id, to_card.id])
    from_card = locked[from_card.id]
    to_card = locked[to_card.id]

    today = date.today()
    try:
        _check_card_can_transfer(from_card, today)
        _check_card_can_transfer(to_card, today)
    except OperationNotAllowedError:
        logger.info(
            "transfer_rejected",
            reason="card_state",
            from_card_id=from_card.id,
            to_card_id=to_card.id,
        )
        raise

    if from_card.balance < amount or not await cards.debit(from_card, amount):
        logger.info("transfer_rejected", reason="insufficient_funds", from_card_id=from_card.id)
        raise InsufficientFundsError(from_card.id)
    await cards.credit(to_card, amount)

    txn = Transaction(
        transaction_id=str(uuid.uuid4()),
        from_card_id=from_card.id,
        to_card_id=to_card.id,
        from_card=from_card,
        to_card=to_card,
        amount=amount,
        description=request.description,
        status=TransactionStatus.COMPLETED,
    )
    txn = await TransactionRepository(db).save(txn)

    logger.info(
        "transfer_completed",
        transaction_id=txn.transaction_id,
        from_card_id=from_card.id,
        to_card_id=to_card.id,
        amount=str(amount),
    )
    return txn


async def list_my_transactions(
    db: AsyncSession,
    ctx: CallContext | None,
    page_request: PageRequest,
    direction: str = OUTGOING,
) -> Page[Transaction]:
    """
    Transfers whose source card (outgoing) or destination card (incoming)
    belongs to the caller.
    """
    ctx = require_context(ctx)
    user = await UserRepository(db).get_by_username(ctx.username)
    if user is None:
        raise UserNotFoundError()

    transactions = TransactionRepository(db)
    if direction == INCOMING:
        return await transactions.list_by_to_owner(user.id, page_request)
    if direction == OUTGOING:
        return await transactions.list_by_from_owner(user.id, page_request)
    raise ValidationFailedError(f"Unknown direction: {direction}")


async def get_transaction(
    db: AsyncSession,
    ctx: CallContext | None,
    transaction_id: str,
) -> Transaction:
    """
    Look up a transfer by its client-visible id.

    Raises:
        TransactionNotFoundError: If no transfer has that id.
        AccessDeniedError: If the caller is neither admin nor owner of
            one of the two cards.
    """
    ctx = require_context(ctx)
    txn = await TransactionRepository(db).get_by_transaction_id(transaction_id)
    if txn is None:
        raise TransactionNotFoundError(transaction_id)

    owners = {txn.from_card.user.username, txn.to_card.user.username}
    if not ctx.is_admin and ctx.username not in owners:
        raise AccessDeniedError("Access denied to this transaction")
    return txn
