"""
BLE to IR bridge loop.

One asyncio task waits on three sources at once:
  1. shutdown (Enter on the console, SIGINT/SIGTERM)
  2. control events from the GATT server (a central starting a write stream)
  3. reads from the active write stream, when there is one

Each completed <dummycmd>PROTOCOL:SCANCODE</dummycmd> is sent with ir-ctl.
The transmit runs synchronously, so the loop blocks until ir-ctl exits.
"""

import asyncio
import logging
import signal
import sys
from dataclasses import dataclass
from typing import Optional, Union

from ble_ir_bridge.framing import CommandBuffer, CommandFramer
from ble_ir_bridge.gatt_server import CharacteristicReader, GattCommandServer
from ble_ir_bridge.ir_ctl import IrCtlTransmitter, TransmitInvocationBuilder

logger = logging.getLogger(__name__)


@dataclass
class NoStream:
    pass


@dataclass
class ActiveStream:
    reader: CharacteristicReader


Stream = Union[NoStream, ActiveStream]


class BridgeLoop:
    """Feeds bytes from the BLE link through the framer into ir-ctl."""

    def __init__(self, link, builder: Optional[TransmitInvocationBuilder] = None,
                 transmitter: Optional[IrCtlTransmitter] = None):
        self.link = link
        self.builder = builder or TransmitInvocationBuilder()
        self.transmitter = transmitter or IrCtlTransmitter()
        self.framer = CommandFramer()
        self.buffer = CommandBuffer()
        self.stream: Stream = NoStream()

    def handle_data(self, data: bytes):
        """Decode one write and transmit the command it completes, if any."""
        logger.debug(f"Write request with {len(data)} bytes: {data.hex()}")
        try:
            text = data.decode("utf-8")
        except UnicodeDecodeError as e:
            logger.warning(f"Failed to decode received bytes as UTF-8: {e}")
            logger.warning(f"Received bytes: {data.hex()}")
            return

        logger.debug(f"Received text: {text!r}")
        self.buffer.append(text)
        command = self.framer.process(self.buffer)
        if command is None:
            return

        invocation = self.builder.build(command)
        self.transmitter.transmit(invocation)

    def _handle_control(self, event) -> bool:
        """Returns False when the control source has gone away."""
        if event is None:
            logger.info("Control event source closed")
            return False
        logger.info("Accepting write stream")
        self.stream = ActiveStream(reader=event.reader)
        return True

    def _handle_read(self, read_task: asyncio.Task):
        try:
            data = read_task.result()
        except OSError as e:
            logger.warning(f"Write stream error: {e}")
            self.stream = NoStream()
            return

        if not data:
            logger.info("Write stream ended")
            self.stream = NoStream()
            return
        self.handle_data(data)

    async def run(self, shutdown: asyncio.Event):
        shutdown_task = asyncio.ensure_future(shutdown.wait())
        control_task = None
        read_task = None
        read_stream = None

        try:
            while True:
                if control_task is None:
                    control_task = asyncio.ensure_future(self.link.next_event())

                # A read started on a replaced stream must not leak into the new one.
                if read_task is not None and read_stream is not self.stream:
                    read_task.cancel()
                    read_task = None
                if read_task is None and isinstance(self.stream, ActiveStream):
                    read_task = asyncio.ensure_future(self.stream.reader.read())
                    read_stream = self.stream

                waiting = {shutdown_task, control_task}
                if read_task is not None:
                    waiting.add(read_task)
                done, _ = await asyncio.wait(waiting, return_when=asyncio.FIRST_COMPLETED)

                if shutdown_task in done:
                    break
                if control_task in done:
                    event = control_task.result()
                    control_task = None
                    if not self._handle_control(event):
                        break
                elif read_task in done:
                    task, read_task = read_task, None
                    self._handle_read(task)
        finally:
            for task in (shutdown_task, control_task, read_task):
                if task is not None and not task.done():
                    task.cancel()


async def _wait_for_enter(shutdown: asyncio.Event):
    loop = asyncio.get_running_loop()
    reader = asyncio.StreamReader()
    protocol = asyncio.StreamReaderProtocol(reader)
    try:
        await loop.connect_read_pipe(lambda: protocol, sys.stdin)
    except (ValueError, OSError) as e:
        logger.info(f"Console not readable ({e}), stop with SIGINT or SIGTERM")
        return
    await reader.readline()
    shutdown.set()


async def serve(config):
    """Advertise the GATT service and bridge commands until shutdown."""
    shutdown = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, shutdown.set)
        except NotImplementedError:
            pass

    server = GattCommandServer(name=config.device_name)
    await server.start()

    bridge = BridgeLoop(server, builder=TransmitInvocationBuilder(tx_device=config.tx_device))
    print("Service ready. Press enter to quit.")
    stdin_task = asyncio.ensure_future(_wait_for_enter(shutdown))
    try:
        await bridge.run(shutdown)
    finally:
        stdin_task.cancel()
        print("Removing service and advertisement")
        await server.stop()
        await asyncio.sleep(config.settle_seconds)
