"""
Wallet custody interface.
Decouples the redemption flow from how a burn is authorized on the ledger.
"""

from abc import ABC, abstractmethod


class WalletSigner(ABC):
    """
    Capability that authorizes ledger writes for one wallet.

    Implementations:
    - CustodialKeySigner: server-held private key sent with the request
    - ServiceSigner: no user credential, the ledger's service key signs
    """

    @abstractmethod
    def authorize(self, address: str) -> dict:
        """
        Build the credential fields to merge into a ledger write request.

        Args:
            address: Wallet address the write acts on

        Returns:
            Extra JSON fields for the request body (may be empty)
        """
        pass
