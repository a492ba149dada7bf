"""
BLE IR Bridge - replay IR remote commands received over Bluetooth LE.

A central writes <dummycmd>PROTOCOL:SCANCODE</dummycmd> to the bridge's GATT
characteristic and the bridge sends it with ir-ctl (v4l-utils).
"""

__version__ = "0.1.0"
