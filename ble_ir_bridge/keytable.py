"""
Parse `ir-keytable` output into per-device capability sections.

ir-keytable (v4l-utils) run without arguments lists every remote-controller
device, one block per device:

    Found /sys/class/rc/rc0/ (/dev/input/event0) with:
        Name: gpio_ir_recv
        Driver: gpio_ir_recv, table: rc-rc6-mce
        LIRC device: /dev/lirc0
        Supported kernel protocols: lirc rc-5 rc-5-sz jvc sony nec
        Enabled kernel protocols: lirc
        bus: 25, vendor/product: 0001:0001, version: 0x0100

Each line is split on commas into "key: value" fragments. A block is kept
only if one of its keys mentions LIRC, i.e. the device exposes a raw LIRC
interface that ir-ctl can drive.
"""

import re
from typing import Dict, List, Optional

HEADER_RE = re.compile(r"^Found (.+?) with:$")

# Reserved key holding the sysfs path from the "Found ... with:" header.
SYSDEV_KEY = "__sysdev__"

CAPABILITY_MARKER = "LIRC"


class CapabilitySection(dict):
    """Attributes reported for one device, keyed by attribute name."""

    @property
    def sysdev(self) -> Optional[str]:
        return self.get(SYSDEV_KEY)

    @property
    def lirc_device(self) -> Optional[str]:
        return self.get("LIRC device")

    def is_marked(self, marker: str = CAPABILITY_MARKER) -> bool:
        return any(marker in key for key in self)

    def attributes(self) -> Dict[str, str]:
        """Reported attributes without the reserved sysdev entry."""
        return {k: v for k, v in self.items() if k != SYSDEV_KEY}


def _split_pairs(line: str):
    for fragment in line.split(","):
        key, sep, value = fragment.partition(":")
        if sep:
            yield key.strip(), value.strip()


def parse_keytable_output(output: str, marker: str = CAPABILITY_MARKER) -> List[CapabilitySection]:
    """
    Group ir-keytable lines into sections and keep the ones carrying `marker`.

    Header detection and key:value extraction both run on every line, so a
    fragment on the header line itself lands in the new section.
    """
    sections = []
    current = CapabilitySection()

    for line in output.splitlines():
        match = HEADER_RE.match(line)
        if match:
            if current and current.is_marked(marker):
                sections.append(CapabilitySection(current))
            current.clear()
            current[SYSDEV_KEY] = match.group(1)

        for key, value in _split_pairs(line):
            current[key] = value

    if current and current.is_marked(marker):
        sections.append(current)

    # Fragments seen before any header never form a device.
    return [s for s in sections if s.sysdev is not None]


def format_section(section: CapabilitySection) -> str:
    lines = [f"Device: {section.sysdev}"]
    for key, value in section.attributes().items():
        lines.append(f"  {key + ':':<28s} {value}")
    return "\n".join(lines)
