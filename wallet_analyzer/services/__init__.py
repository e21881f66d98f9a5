"""Service layer helpers"""

from .address import AddressResolutionError, resolve_address
from .chains import canonicalize_chain, chain_metadata

__all__ = [
    "AddressResolutionError",
    "canonicalize_chain",
    "chain_metadata",
    "resolve_address",
]
