"""
Vero — Verification Registry

Non-fungible certificates that reference externally hosted resources, each
carrying a verification status (PENDING, APPROVED, REJECTED, REVOKED) that
only the single current admin can move. A global pause gate blocks every
mutating call; each resource reference can be issued exactly once, ever.
"""

from vero.systems.registry.registry import VeroRegistry
from vero.systems.registry.service import VeroService
from vero.systems.registry.types import (
    CertificateToken,
    Receipt,
    RegistryEvent,
    RegistryEventType,
    VeroStatus,
)

__all__ = [
    "CertificateToken",
    "Receipt",
    "RegistryEvent",
    "RegistryEventType",
    "VeroRegistry",
    "VeroService",
    "VeroStatus",
]
