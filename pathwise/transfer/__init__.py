"""Transfer gate: near/far transfer test requirements."""

from pathwise.transfer.gate import (
    TransferGate,
    TransferGateConfig,
    TransferStatus,
    TransferTest,
    TransferTestResult,
    TransferType,
    create_transfer_test,
)

__all__ = [
    "TransferGate",
    "TransferGateConfig",
    "TransferStatus",
    "TransferTest",
    "TransferTestResult",
    "TransferType",
    "create_transfer_test",
]
