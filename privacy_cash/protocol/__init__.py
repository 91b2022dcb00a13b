"""
Privacy Cash Client Protocol
Contracts for the zero-knowledge transaction engine.
"""

from privacy_cash.protocol.engine import (
    Engine,
    OperationKind,
    OperationRequest,
    SpentStateProvider,
)

__all__ = [
    "Engine",
    "OperationKind",
    "OperationRequest",
    "SpentStateProvider",
]
