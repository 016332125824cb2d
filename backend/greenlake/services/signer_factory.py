"""
Wallet signer factory.
Configures how ledger writes are authorized for a user.
"""

from greenlake.core.config import get_settings
from greenlake.core.exceptions import ValidationError
from greenlake.models.user import User
from greenlake.services.interfaces import CustodialKeySigner, ServiceSigner, WalletSigner

settings = get_settings()


def get_signer(user: User) -> WalletSigner:
    """
    Resolve the signer for a user's wallet.

    Mode selection via LEDGER_SIGNER_MODE:
    - custodial (default): use the private key stored at wallet creation
    - service: let the ledger authorize with its service key

    Raises ValidationError when custodial mode has no key to sign with.
    """
    if settings.LEDGER_SIGNER_MODE == "service":
        return ServiceSigner()

    if not user.private_key:
        raise ValidationError("User does not have a private key")
    return CustodialKeySigner(user.private_key)
