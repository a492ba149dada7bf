"""
ir-ctl invocation building and execution.

Resulting command line:

    ir-ctl -v -d /dev/lirc-tx [-g 600] -S PROTOCOL:SCANCODE [-S ... -S ...]

Sony receivers need a 600us inter-frame gap and the frame repeated three
times before they register a press; every other protocol is sent once.
"""

import logging
import shlex
import subprocess
from dataclasses import dataclass, field
from typing import List, Optional

from ble_ir_bridge.framing import ParsedCommand

logger = logging.getLogger(__name__)

IR_CTL_CMD = "ir-ctl"
DEFAULT_TX_DEVICE = "/dev/lirc-tx"

SONY_PREFIX = "sony"
SONY_GAP_US = 600
SONY_REPEATS = 3


@dataclass
class Invocation:
    binary: str
    args: List[str] = field(default_factory=list)

    @property
    def argv(self) -> List[str]:
        return [self.binary] + self.args

    def send_values(self) -> List[str]:
        """Values passed to each -S flag, in order."""
        return [self.args[i + 1] for i, arg in enumerate(self.args[:-1]) if arg == "-S"]

    def __str__(self):
        return shlex.join(self.argv)


class TransmitInvocationBuilder:
    """Maps a ParsedCommand to the ir-ctl argument vector that sends it."""

    def __init__(self, tx_device: str = DEFAULT_TX_DEVICE, binary: str = IR_CTL_CMD):
        self.tx_device = tx_device
        self.binary = binary

    def build(self, command: ParsedCommand) -> Invocation:
        args = ["-v", "-d", self.tx_device]

        is_sony = command.protocol.startswith(SONY_PREFIX)
        if is_sony:
            args += ["-g", str(SONY_GAP_US)]

        repeats = SONY_REPEATS if is_sony else 1
        for _ in range(repeats):
            args += ["-S", command.send_value]

        return Invocation(self.binary, args)


class IrCtlTransmitter:
    """Runs ir-ctl synchronously. Failures are logged, never retried."""

    def transmit(self, invocation: Invocation) -> Optional[subprocess.CompletedProcess]:
        logger.info(f"Executing command: {invocation}")
        try:
            proc = subprocess.run(
                invocation.argv, capture_output=True, encoding="utf-8", errors="replace"
            )
        except OSError as e:
            logger.error(f"Failed to execute {invocation.binary}: {e}")
            return None

        stdout = (proc.stdout or "").strip()
        stderr = (proc.stderr or "").strip()
        if proc.returncode != 0:
            logger.warning(
                f"{invocation.binary} exited with code {proc.returncode}: {stderr or stdout}"
            )
        else:
            logger.info(f"Command executed, output: {stdout!r}")
        if stderr:
            logger.debug(f"{invocation.binary} stderr: {stderr}")
        return proc
