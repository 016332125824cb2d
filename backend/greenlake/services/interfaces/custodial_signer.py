"""
Custodial signer - the platform holds the user's private key.
"""

from greenlake.services.interfaces.signer import WalletSigner


class CustodialKeySigner(WalletSigner):
    """Sends the stored private key so the ledger can sign as the user."""

    def __init__(self, private_key: str):
        self._private_key = private_key

    def authorize(self, address: str) -> dict:
        return {"privateKey": self._private_key}

    def __repr__(self) -> str:
        # Never leak the key into logs
        return "<CustodialKeySigner(***)>"
