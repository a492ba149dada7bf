"""
BLE IR Bridge CLI - Main entry point for all tools.

Usage:
    ble-ir-bridge serve [--tx-device DEV] [--name NAME] [--settle SECONDS]
    ble-ir-bridge check [--json]
    ble-ir-bridge keytable <FILE> [--json]
    ble-ir-bridge send <PROTOCOL:SCANCODE> [--tx-device DEV] [--dry-run]
"""

import argparse
import asyncio
import json
import logging
import sys

from ble_ir_bridge.config import BridgeConfig

logger = logging.getLogger("ble_ir_bridge")


def _print_sections(sections, as_json: bool):
    from ble_ir_bridge.keytable import format_section

    if as_json:
        print(json.dumps(sections, indent=2))
        return
    if not sections:
        print("No infrared device with a LIRC interface found.")
    for section in sections:
        print(format_section(section))


def cmd_serve(args, config: BridgeConfig) -> int:
    from ble_ir_bridge.bridge import serve
    from ble_ir_bridge.environment import check_environment

    sections = check_environment()
    if sections is None:
        return 0
    _print_sections(sections, as_json=False)

    asyncio.run(serve(config))
    return 0


def cmd_check(args, config: BridgeConfig) -> int:
    from ble_ir_bridge.environment import check_environment

    sections = check_environment()
    if sections is None:
        return 1
    _print_sections(sections, as_json=args.json)
    return 0


def cmd_keytable(args, config: BridgeConfig) -> int:
    from ble_ir_bridge.keytable import parse_keytable_output

    with open(args.file, "r", encoding="utf-8", errors="replace") as f:
        sections = parse_keytable_output(f.read())
    _print_sections(sections, as_json=args.json)
    return 0


def cmd_send(args, config: BridgeConfig) -> int:
    from ble_ir_bridge.framing import CLOSE_MARKER, OPEN_MARKER, CommandBuffer, CommandFramer
    from ble_ir_bridge.ir_ctl import IrCtlTransmitter, TransmitInvocationBuilder

    buffer = CommandBuffer(f"{OPEN_MARKER}{args.code}{CLOSE_MARKER}")
    command = CommandFramer().process(buffer)
    if command is None:
        print(f"Invalid command {args.code!r}, expected PROTOCOL:SCANCODE (e.g. nec:0x40)")
        return 1

    invocation = TransmitInvocationBuilder(tx_device=config.tx_device).build(command)
    if args.dry_run:
        print(invocation)
        return 0

    proc = IrCtlTransmitter().transmit(invocation)
    if proc is None:
        return 1
    if proc.stdout:
        print(proc.stdout.rstrip())
    return proc.returncode


def main(argv=None):
    config = BridgeConfig.from_env()

    parser = argparse.ArgumentParser(
        prog="ble-ir-bridge",
        description="Replay IR remote commands received over Bluetooth LE",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Commands are written to the GATT characteristic as UTF-8 text:
  <dummycmd>PROTOCOL:SCANCODE</dummycmd>

Examples:
  %(prog)s check                          # Look for ir-ctl/ir-keytable and LIRC devices
  %(prog)s keytable saved_output.txt      # Parse captured ir-keytable output
  %(prog)s send nec:0x40 --dry-run        # Show the ir-ctl command line
  %(prog)s serve                          # Advertise and bridge until Enter
        """,
    )
    parser.add_argument("--log-level", default=config.log_level,
                        help=f"Logging level (default: {config.log_level}, env BLE_IR_LOG_LEVEL)")

    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    # serve
    serve_parser = subparsers.add_parser("serve", help="Run the BLE to IR bridge")
    serve_parser.add_argument("--tx-device", default=config.tx_device,
                              help=f"LIRC transmit device (default: {config.tx_device})")
    serve_parser.add_argument("--name", default=config.device_name,
                              help=f"Advertised local name (default: {config.device_name})")
    serve_parser.add_argument("--settle", type=float, default=config.settle_seconds,
                              help="Seconds to wait after teardown (default: %(default)s)")

    # check
    check_parser = subparsers.add_parser("check", help="Check IR tools and devices")
    check_parser.add_argument("--json", action="store_true", help="Output sections as JSON")

    # keytable
    kt_parser = subparsers.add_parser("keytable", help="Parse saved ir-keytable output")
    kt_parser.add_argument("file", help="File holding ir-keytable stderr output")
    kt_parser.add_argument("--json", action="store_true", help="Output sections as JSON")

    # send
    send_parser = subparsers.add_parser("send", help="Send one IR command with ir-ctl")
    send_parser.add_argument("code", metavar="PROTOCOL:SCANCODE",
                             help="IR code to send, e.g. sony12:0x10015")
    send_parser.add_argument("--tx-device", default=config.tx_device,
                             help=f"LIRC transmit device (default: {config.tx_device})")
    send_parser.add_argument("--dry-run", action="store_true",
                             help="Print the ir-ctl command instead of running it")

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=getattr(logging, str(args.log_level).upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )

    if not args.command:
        parser.print_help()
        return 1

    if hasattr(args, "tx_device"):
        config.tx_device = args.tx_device
    if args.command == "serve":
        config.device_name = args.name
        config.settle_seconds = args.settle

    handlers = {
        "serve": cmd_serve,
        "check": cmd_check,
        "keytable": cmd_keytable,
        "send": cmd_send,
    }
    try:
        return handlers[args.command](args, config)
    except KeyboardInterrupt:
        return 0
    except Exception:
        logger.exception(f"{args.command} failed")
        return 1


if __name__ == "__main__":
    sys.exit(main())
