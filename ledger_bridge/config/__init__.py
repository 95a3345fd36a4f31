"""Configuration package."""

from ledger_bridge.config.settings import (
    IngestorConfig,
    SettlementConfig,
    Settings,
    UnresolvedDepositPolicy,
    load_settings,
)

__all__ = [
    "IngestorConfig",
    "SettlementConfig",
    "Settings",
    "UnresolvedDepositPolicy",
    "load_settings",
]
