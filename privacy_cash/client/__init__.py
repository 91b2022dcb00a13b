"""
Privacy Cash Client Facade
Configuration, orchestration and status reporting.
"""

from privacy_cash.client.config import ClientConfig, setup_logging
from privacy_cash.client.orchestrator import OperationOrchestrator
from privacy_cash.client.status import StatusReporter, PhaseLogHandler, CallbackLogHandler
from privacy_cash.client.client import PrivacyCash

__all__ = [
    "ClientConfig",
    "setup_logging",
    "OperationOrchestrator",
    "StatusReporter",
    "PhaseLogHandler",
    "CallbackLogHandler",
    "PrivacyCash",
]
