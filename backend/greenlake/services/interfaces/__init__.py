"""
Service interfaces for dependency inversion.
Allows swapping implementations without changing business logic.
"""

from .signer import WalletSigner
from .custodial_signer import CustodialKeySigner
from .service_signer import ServiceSigner

__all__ = ['WalletSigner', 'CustodialKeySigner', 'ServiceSigner']
