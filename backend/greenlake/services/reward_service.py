"""
Reward redemption: spend EcoTokens on discounts and amenities.

REDEMPTION FLOW
===============

  REQUESTED -> VALIDATED -> BALANCE_CHECKED -> [SLOT_CLAIMED] -> BURNED -> REDEEMED

  1. Resolve the user, their wallet and a signer for it
  2. Validate the offer (active, inside its window, under its caps)
  3. Price it (flat token_cost for discounts, token_cost * quantity for amenities)
  4. Ask the ledger for the balance; reject when it cannot cover the cost
  5. Discounts only: claim a usage slot with one conditional UPDATE
  6. Burn the tokens on the ledger
  7. Persist and commit the redemption record with a fresh random QR code

Usage caps:
  The naive approach reads used_count, compares it to max_uses and
  increments later. Two concurrent redemptions both read used_count=0 and
  both succeed, so a max_uses=1 discount is redeemed twice.

  Instead the slot is claimed with

      UPDATE discounts SET used_count = used_count + 1
      WHERE id = :id AND is_active AND (max_uses IS NULL OR used_count < max_uses)

  and a rowcount of 0 means someone else took the last slot. The claim
  happens before the burn, so a losing request never spends tokens. If the
  burn then fails the request transaction rolls back and the slot is
  released with it.

Burn-then-persist gap:
  The burn is an external effect we cannot roll back. If writing the
  redemption record fails after a confirmed burn, at flush or at commit,
  the tokens are minted back to the wallet (compensating action) before
  the error is raised.
"""

import secrets
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import List, Optional, Tuple

from sqlalchemy import or_, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from greenlake.core.exceptions import (
    BurnFailedError,
    InsufficientTokensError,
    InternalError,
    LedgerError,
    NotFoundError,
    ValidationError,
)
from greenlake.core.logging import get_logger
from greenlake.core.metrics import record_redemption
from greenlake.infrastructure.ledger_client import LedgerClient
from greenlake.models.reward import Amenity, AmenityPurchase, Discount, DiscountRedemption
from greenlake.models.user import User
from greenlake.services.interfaces.signer import WalletSigner
from greenlake.services.signer_factory import get_signer

logger = get_logger(__name__)

QR_CODE_BYTES = 32


@dataclass
class RedemptionResult:
    qr_code: str
    tokens_paid: int
    success: bool = True


def generate_qr_code() -> str:
    """Opaque single-use redemption code: 32 random bytes, 64 hex chars."""
    return secrets.token_hex(QR_CODE_BYTES)


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes; they are stored in UTC
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


async def _resolve_wallet(db: AsyncSession, user_id: int) -> Tuple[User, WalletSigner]:
    user = await db.get(User, user_id)
    if not user:
        raise NotFoundError("User not found")
    if not user.wallet_address:
        raise ValidationError("User does not have a wallet")
    return user, get_signer(user)


async def _check_balance(ledger: LedgerClient, address: str, cost: int) -> int:
    try:
        balance = await ledger.get_balance(address)
    except LedgerError as e:
        raise InternalError(f"Could not read token balance: {e.message}") from e

    if balance < cost:
        raise InsufficientTokensError(
            "Insufficient tokens",
            details={"required": cost, "balance": balance},
        )
    return balance


async def _burn(ledger: LedgerClient, kind: str, address: str, cost: int, signer: WalletSigner) -> dict:
    try:
        return await ledger.burn(address, cost, signer)
    except LedgerError as e:
        record_redemption(kind, "burn_failed")
        logger.error("redemption_burn_failed", kind=kind, address=address, amount=cost, error=e.message)
        raise BurnFailedError("Failed to burn tokens") from e


async def _persist_or_refund(db: AsyncSession, ledger: LedgerClient, kind: str, record, address: str,
                             cost: int) -> None:
    """
    Write and commit the redemption record. If the flush or the commit
    fails, the burned tokens are minted back to the wallet.
    """
    try:
        db.add(record)
        await db.flush()
        await db.refresh(record)
        await db.commit()
    except SQLAlchemyError as e:
        logger.error("redemption_persist_failed", kind=kind, address=address, amount=cost, error=str(e))
        try:
            await ledger.mint(address, cost)
            record_redemption(kind, "refunded")
            logger.warning("redemption_refunded", kind=kind, address=address, amount=cost)
        except LedgerError as refund_error:
            # Tokens are gone and no record exists; needs manual reconciliation
            logger.critical(
                "redemption_refund_failed",
                kind=kind,
                address=address,
                amount=cost,
                error=refund_error.message,
            )
        raise InternalError("Could not record redemption") from e


async def claim_discount_slot(db: AsyncSession, discount_id: int) -> bool:
    """Atomically take one use of a discount. False when the cap is already reached."""
    result = await db.execute(
        update(Discount)
        .where(
            Discount.id == discount_id,
            Discount.is_active.is_(True),
            or_(Discount.max_uses.is_(None), Discount.used_count < Discount.max_uses),
        )
        .values(used_count=Discount.used_count + 1)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1


async def redeem_discount(
    db: AsyncSession,
    ledger: LedgerClient,
    user_id: int,
    discount_id: int,
) -> RedemptionResult:
    user, signer = await _resolve_wallet(db, user_id)

    result = await db.execute(
        select(Discount)
        .where(Discount.id == discount_id)
        .execution_options(populate_existing=True)
    )
    discount = result.scalar_one_or_none()
    if not discount:
        raise NotFoundError("Discount not found")

    now = datetime.now(timezone.utc)
    if (
        not discount.is_active
        or now < _as_utc(discount.valid_from)
        or now > _as_utc(discount.valid_until)
    ):
        record_redemption("discount", "rejected")
        raise ValidationError("Discount is not active or has expired")

    if discount.max_uses is not None and discount.used_count >= discount.max_uses:
        record_redemption("discount", "rejected")
        raise ValidationError("Discount has reached its usage limit")

    cost = discount.token_cost
    await _check_balance(ledger, user.wallet_address, cost)

    if not await claim_discount_slot(db, discount.id):
        record_redemption("discount", "rejected")
        logger.info("discount_slot_lost", discount_id=discount.id, user_id=user_id)
        raise ValidationError("Discount has reached its usage limit")

    receipt = await _burn(ledger, "discount", user.wallet_address, cost, signer)

    qr_code = generate_qr_code()
    redemption = DiscountRedemption(
        user_id=user.id,
        discount_id=discount.id,
        tokens_paid=cost,
        qr_code=qr_code,
        status="ACTIVE",
    )
    await _persist_or_refund(db, ledger, "discount", redemption, user.wallet_address, cost)

    record_redemption("discount", "success", tokens=cost)
    logger.info(
        "discount_redeemed",
        user_id=user.id,
        discount_id=discount.id,
        redemption_id=redemption.id,
        tokens_paid=cost,
        transaction_hash=receipt.get("transactionHash"),
    )
    return RedemptionResult(qr_code=qr_code, tokens_paid=cost)


async def purchase_amenity(
    db: AsyncSession,
    ledger: LedgerClient,
    user_id: int,
    amenity_id: int,
    quantity: int = 1,
) -> RedemptionResult:
    user, signer = await _resolve_wallet(db, user_id)

    amenity = await db.get(Amenity, amenity_id)
    if not amenity:
        raise NotFoundError("Amenity not found")

    if not amenity.is_active:
        record_redemption("amenity", "rejected")
        raise ValidationError("Amenity is not available")

    if quantity < 1:
        raise ValidationError("Quantity must be at least 1")
    if amenity.max_quantity is not None and quantity > amenity.max_quantity:
        record_redemption("amenity", "rejected")
        raise ValidationError("Quantity exceeds maximum allowed")

    cost = amenity.token_cost * quantity
    await _check_balance(ledger, user.wallet_address, cost)

    receipt = await _burn(ledger, "amenity", user.wallet_address, cost, signer)

    qr_code = generate_qr_code()
    purchase = AmenityPurchase(
        user_id=user.id,
        amenity_id=amenity.id,
        quantity=quantity,
        tokens_paid=cost,
        qr_code=qr_code,
        status="ACTIVE",
    )
    await _persist_or_refund(db, ledger, "amenity", purchase, user.wallet_address, cost)

    record_redemption("amenity", "success", tokens=cost)
    logger.info(
        "amenity_purchased",
        user_id=user.id,
        amenity_id=amenity.id,
        purchase_id=purchase.id,
        quantity=quantity,
        tokens_paid=cost,
        transaction_hash=receipt.get("transactionHash"),
    )
    return RedemptionResult(qr_code=qr_code, tokens_paid=cost)


async def list_discounts(db: AsyncSession, active_only: bool = True) -> List[Discount]:
    query = select(Discount).order_by(Discount.token_cost, Discount.id)
    if active_only:
        now = datetime.now(timezone.utc)
        query = query.where(
            Discount.is_active.is_(True),
            Discount.valid_from <= now,
            Discount.valid_until >= now,
        )
    result = await db.execute(query)
    return list(result.scalars().all())


async def list_amenities(db: AsyncSession, active_only: bool = True) -> List[Amenity]:
    query = select(Amenity).order_by(Amenity.token_cost, Amenity.id)
    if active_only:
        query = query.where(Amenity.is_active.is_(True))
    result = await db.execute(query)
    return list(result.scalars().all())


async def list_user_redemptions(
    db: AsyncSession, user_id: int
) -> Tuple[List[DiscountRedemption], List[AmenityPurchase]]:
    discounts = await db.execute(
        select(DiscountRedemption)
        .where(DiscountRedemption.user_id == user_id)
        .order_by(DiscountRedemption.id.desc())
    )
    amenities = await db.execute(
        select(AmenityPurchase)
        .where(AmenityPurchase.user_id == user_id)
        .order_by(AmenityPurchase.id.desc())
    )
    return list(discounts.scalars().all()), list(amenities.scalars().all())


async def get_discount(db: AsyncSession, discount_id: int) -> Optional[Discount]:
    return await db.get(Discount, discount_id)
