"""Bridge settings read from BLE_IR_* environment variables."""

import logging
import os
from dataclasses import dataclass
from typing import Optional

from ble_ir_bridge.ir_ctl import DEFAULT_TX_DEVICE

DEFAULT_DEVICE_NAME = "gatt_server"
DEFAULT_SETTLE_SECONDS = 1.0


@dataclass
class BridgeConfig:
    log_level: str = "INFO"
    tx_device: str = DEFAULT_TX_DEVICE
    device_name: str = DEFAULT_DEVICE_NAME
    # Time given to BlueZ to flush teardown messages before exit.
    settle_seconds: float = DEFAULT_SETTLE_SECONDS

    @classmethod
    def from_env(cls) -> "BridgeConfig":
        return cls(
            log_level=_read_log_level("BLE_IR_LOG_LEVEL", cls.log_level),
            tx_device=_read_str("BLE_IR_TX_DEVICE", cls.tx_device),
            device_name=_read_str("BLE_IR_DEVICE_NAME", cls.device_name),
            settle_seconds=_read_float("BLE_IR_SETTLE_SECONDS", cls.settle_seconds, min_value=0.0),
        )


def _read_str(name: str, default: str) -> str:
    value = os.getenv(name, "").strip()
    return value or default


def _read_log_level(name: str, default: str) -> str:
    value = os.getenv(name, "").strip().upper()
    if value and isinstance(logging.getLevelName(value), int):
        return value
    return default


def _read_float(name: str, default: float, min_value: Optional[float] = None) -> float:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        value = float(raw.strip())
    except ValueError:
        return default
    if min_value is not None and value < min_value:
        return default
    return value
