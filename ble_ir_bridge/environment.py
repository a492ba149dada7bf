"""
Startup checks: required v4l-utils binaries and an IR device with LIRC support.

ir-keytable prints its device listing on stderr, not stdout, so the probe
reads the stderr channel. ir-ctl reports on stdout.
"""

import logging
import shutil
import subprocess
from enum import Enum
from typing import Callable, List, Optional, Sequence

from ble_ir_bridge.ir_ctl import IR_CTL_CMD
from ble_ir_bridge.keytable import CapabilitySection, parse_keytable_output

logger = logging.getLogger(__name__)

IR_KEYTABLE_CMD = "ir-keytable"
REQUIRED_BINARIES = (IR_KEYTABLE_CMD, IR_CTL_CMD)


class Channel(Enum):
    STDOUT = "stdout"
    STDERR = "stderr"


# Channel each external tool writes its normal informational output to.
TOOL_CHANNELS = {
    IR_KEYTABLE_CMD: Channel.STDERR,
    IR_CTL_CMD: Channel.STDOUT,
}


class ProcessTextSource:
    """Runs a tool to completion and returns the text of one output channel."""

    def read(self, binary: str, args: Sequence[str] = (), channel: Optional[Channel] = None) -> str:
        if channel is None:
            channel = TOOL_CHANNELS.get(binary, Channel.STDOUT)

        pipe_out = subprocess.PIPE if channel is Channel.STDOUT else subprocess.DEVNULL
        pipe_err = subprocess.PIPE if channel is Channel.STDERR else subprocess.DEVNULL
        proc = subprocess.run([binary, *args], stdout=pipe_out, stderr=pipe_err)

        raw = proc.stdout if channel is Channel.STDOUT else proc.stderr
        logger.debug(f"{binary} exited with {proc.returncode}, {len(raw or b'')} bytes on {channel.value}")
        return (raw or b"").decode("utf-8", errors="replace")


def is_binary_installed(binary: str) -> bool:
    return shutil.which(binary) is not None


def check_environment(
    source: Optional[ProcessTextSource] = None,
    which: Callable[[str], bool] = is_binary_installed,
) -> Optional[List[CapabilitySection]]:
    """
    Verify v4l-utils is installed and ir-keytable reports a device.

    Prints a remediation message and returns None when the bridge should not
    start. Otherwise returns the LIRC-capable sections, which are shown to the
    operator but do not gate startup (the list may be empty).
    """
    for binary in REQUIRED_BINARIES:
        if not which(binary):
            print(f"{binary} is not installed. Please install {binary} (e.g., sudo apt install v4l-utils).")
            return None

    source = source or ProcessTextSource()
    output = source.read(IR_KEYTABLE_CMD, channel=TOOL_CHANNELS[IR_KEYTABLE_CMD])
    if not output:
        print("We cannot find any infrared device.")
        return None

    sections = parse_keytable_output(output)
    if not sections:
        logger.warning("ir-keytable reported no device with a LIRC interface")
    for section in sections:
        logger.info(f"IR device {section.sysdev}: {section.attributes()}")
    return sections
