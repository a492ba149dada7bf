"""
BLE GATT peripheral exposing a single write/notify characteristic.

The server advertises one primary service; centrals write command text to its
characteristic. Writes are turned into a control event (`WriteAccepted`) for
the first write from a central, followed by a byte stream that the bridge
loop reads from. A zero-length write ends the stream.

Runs on BlueZ through bless, which builds on bleak's GATT types.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Optional

from bleak.backends.characteristic import BleakGATTCharacteristic
from bless import BlessServer, GATTAttributePermissions, GATTCharacteristicProperties

from ble_ir_bridge.config import DEFAULT_DEVICE_NAME

logger = logging.getLogger(__name__)

SERVICE_UUID = "a5d7c2f0-6a3e-4a9e-9c4f-3d1f5b8e0001"
CHARACTERISTIC_UUID = "a5d7c2f0-6a3e-4a9e-9c4f-3d1f5b8e0002"


class CharacteristicReader:
    """Bytes written by one central, read back in order. b"" means end of stream."""

    def __init__(self):
        self._chunks: asyncio.Queue = asyncio.Queue()
        self._closed = False

    def feed(self, data: bytes):
        if not self._closed:
            self._chunks.put_nowait(bytes(data))

    def close(self):
        if not self._closed:
            self._closed = True
            self._chunks.put_nowait(b"")

    async def read(self) -> bytes:
        return await self._chunks.get()


@dataclass
class WriteAccepted:
    reader: CharacteristicReader


class GattCommandServer:
    """Serves the command characteristic and publishes link events."""

    def __init__(self, name: str = DEFAULT_DEVICE_NAME,
                 service_uuid: str = SERVICE_UUID,
                 char_uuid: str = CHARACTERISTIC_UUID):
        self.name = name
        self.service_uuid = service_uuid
        self.char_uuid = char_uuid
        self._events: asyncio.Queue = asyncio.Queue()
        self._reader: Optional[CharacteristicReader] = None
        self._server: Optional[BlessServer] = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None

    async def start(self):
        self._loop = asyncio.get_running_loop()
        self._server = BlessServer(name=self.name, loop=self._loop)
        self._server.write_request_func = self._on_write

        await self._server.add_new_service(self.service_uuid)
        properties = (
            GATTCharacteristicProperties.write
            | GATTCharacteristicProperties.write_without_response
            | GATTCharacteristicProperties.notify
        )
        await self._server.add_new_characteristic(
            self.service_uuid, self.char_uuid, properties, None,
            GATTAttributePermissions.writeable,
        )
        await self._server.start()
        print(f"Advertising as {self.name!r} with service {self.service_uuid}")
        logger.info(f"Serving characteristic {self.char_uuid}")

    async def stop(self):
        """Withdraw the advertisement and the service."""
        if self._reader is not None:
            self._reader.close()
            self._reader = None
        if self._server is not None:
            await self._server.stop()
            self._server = None
        self._events.put_nowait(None)

    async def next_event(self) -> Optional[WriteAccepted]:
        """Next control event, or None once the server has stopped."""
        return await self._events.get()

    def _on_write(self, characteristic: BleakGATTCharacteristic, value: Any, **kwargs):
        # bless may call back from a backend thread
        data = bytes(value or b"")
        logger.debug(f"Write to {characteristic.uuid}: {data.hex()} {kwargs}")
        self._loop.call_soon_threadsafe(self._dispatch_write, data)

    def _dispatch_write(self, data: bytes):
        if self._reader is None:
            if not data:
                return
            self._reader = CharacteristicReader()
            self._events.put_nowait(WriteAccepted(reader=self._reader))

        if data:
            self._reader.feed(data)
        else:
            self._reader.close()
            self._reader = None
