"""Delegated credential exchange and outbound token injection."""

from .context import caller_credential, get_caller_credential, parse_bearer
from .exchange import ExchangeError, TokenExchanger
from .injector import OutboundCredentialInjector
from .models import ConfidentialClient, DownstreamToken

__all__ = [
    "ConfidentialClient",
    "DownstreamToken",
    "ExchangeError",
    "OutboundCredentialInjector",
    "TokenExchanger",
    "caller_credential",
    "get_caller_credential",
    "parse_bearer",
]
