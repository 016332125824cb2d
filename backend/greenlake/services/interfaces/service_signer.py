"""
Service signer - the ledger authorizes the write with its own admin key.
"""

from greenlake.services.interfaces.signer import WalletSigner


class ServiceSigner(WalletSigner):
    """No user credential leaves the platform."""

    def authorize(self, address: str) -> dict:
        return {}
