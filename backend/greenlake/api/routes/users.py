"""
Profile and wallet endpoints for the authenticated user.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from greenlake.db.session import get_db
from greenlake.core.security import get_current_user_id
from greenlake.infrastructure.ledger_client import LedgerClient, get_ledger
from greenlake.schemas.user import (
    TransferRequest,
    TransferResponse,
    UserProfile,
    UserResponse,
    UserUpdate,
    WalletResponse,
)
from greenlake.services import wallet_service

router = APIRouter(prefix="/users", tags=["Users"])


@router.get("/me", response_model=UserProfile)
async def get_me(
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
    ledger: LedgerClient = Depends(get_ledger),
):
    """Profile with the live EcoToken balance."""
    user, balance = await wallet_service.get_profile(db, ledger, user_id)
    profile = UserProfile.model_validate(user)
    profile.balance = balance
    return profile


@router.put("/me", response_model=UserResponse)
async def update_me(
    changes: UserUpdate,
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    user = await wallet_service.update_profile(db, user_id, changes.model_dump(exclude_unset=True))
    return user


@router.post("/create-wallet", response_model=WalletResponse)
async def create_wallet(
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
    ledger: LedgerClient = Depends(get_ledger),
):
    """Create a custodial wallet; returns the existing one if already created."""
    address = await wallet_service.create_wallet(db, ledger, user_id)
    return WalletResponse(address=address)


@router.post("/me/transfer", response_model=TransferResponse)
async def transfer(
    transfer_data: TransferRequest,
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
    ledger: LedgerClient = Depends(get_ledger),
):
    receipt = await wallet_service.transfer_tokens(
        db, ledger, user_id, transfer_data.to, transfer_data.amount
    )
    return TransferResponse(transaction_hash=receipt["transaction_hash"])
