"""
Models package for the Prime API runtime.
"""

from .auth import Credential, TokenInfo, TokenResponse
from .quota import QuotaStatus

__all__ = ["Credential", "TokenInfo", "TokenResponse", "QuotaStatus"]
