"""
Profiles and custodial wallets.

The EcoToken balance shown on the profile is read from the ledger on every
request. A ledger outage degrades the balance to "0" instead of failing
the whole profile.
"""

from typing import Any, Dict, Optional, Tuple

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from greenlake.core.exceptions import (
    InsufficientTokensError,
    InternalError,
    LedgerError,
    NotFoundError,
    TransferFailedError,
    ValidationError,
)
from greenlake.core.logging import get_logger
from greenlake.infrastructure.ledger_client import LedgerClient
from greenlake.models.user import User
from greenlake.services.signer_factory import get_signer

logger = get_logger(__name__)


async def _get_user(db: AsyncSession, user_id: int) -> User:
    user = await db.get(User, user_id)
    if not user:
        raise NotFoundError("User not found")
    return user


async def get_profile(db: AsyncSession, ledger: LedgerClient, user_id: int) -> Tuple[User, str]:
    """Return the user and their live token balance as a string."""
    user = await _get_user(db, user_id)

    balance = "0"
    if user.wallet_address:
        try:
            balance = str(await ledger.get_balance(user.wallet_address))
        except LedgerError as e:
            logger.warning("balance_unavailable", user_id=user.id, error=e.message)

    return user, balance


async def update_profile(db: AsyncSession, user_id: int, changes: Dict[str, Any]) -> User:
    """Apply name/phone/address changes; keys that are absent are left alone."""
    user = await _get_user(db, user_id)

    for field in ("name", "phone", "address"):
        if field in changes:
            setattr(user, field, changes[field])

    await db.flush()
    await db.refresh(user)
    logger.info("profile_updated", user_id=user.id, fields=sorted(changes))
    return user


async def create_wallet(db: AsyncSession, ledger: LedgerClient, user_id: int) -> str:
    """
    Register a wallet for the user with the ledger, store its key and commit.
    Idempotent: a user that already has a wallet gets the existing address.
    """
    user = await _get_user(db, user_id)
    if user.wallet_address:
        return user.wallet_address

    try:
        wallet = await ledger.create_wallet(user.email)
    except LedgerError as e:
        raise InternalError(f"Failed to create wallet: {e.message}") from e

    user.wallet_address = wallet["address"]
    user.private_key = wallet.get("privateKey")
    try:
        await db.commit()
    except SQLAlchemyError as e:
        # The ledger wallet exists but nothing points at it; the address is
        # the reconciliation key
        logger.critical("wallet_store_failed", user_id=user_id, address=wallet["address"], error=str(e))
        raise InternalError("Failed to store wallet") from e

    logger.info("wallet_created", user_id=user.id, address=user.wallet_address)
    return user.wallet_address


async def transfer_tokens(
    db: AsyncSession,
    ledger: LedgerClient,
    user_id: int,
    to_address: str,
    amount: int,
) -> Dict[str, Optional[str]]:
    """Send tokens from the user's wallet to another address."""
    if amount <= 0:
        raise ValidationError("Amount must be positive")

    user = await _get_user(db, user_id)
    if not user.wallet_address:
        raise ValidationError("User does not have a wallet")
    if to_address == user.wallet_address:
        raise ValidationError("Cannot transfer tokens to the same wallet")

    signer = get_signer(user)

    try:
        balance = await ledger.get_balance(user.wallet_address)
    except LedgerError as e:
        raise InternalError(f"Could not read token balance: {e.message}") from e
    if balance < amount:
        raise InsufficientTokensError(
            "Insufficient tokens",
            details={"required": amount, "balance": balance},
        )

    try:
        receipt = await ledger.transfer(user.wallet_address, to_address, amount, signer)
    except LedgerError as e:
        logger.error("token_transfer_failed", user_id=user.id, to=to_address, amount=amount, error=e.message)
        raise TransferFailedError("Failed to transfer tokens") from e

    logger.info(
        "tokens_transferred",
        user_id=user.id,
        to=to_address,
        amount=amount,
        transaction_hash=receipt.get("transactionHash"),
    )
    return {"transaction_hash": receipt.get("transactionHash")}
