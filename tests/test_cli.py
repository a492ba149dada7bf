"""Tests for the command line and environment configuration."""

import subprocess
from unittest.mock import patch

from ble_ir_bridge.cli import main
from ble_ir_bridge.config import BridgeConfig


def test_config_defaults(monkeypatch):
    for name in ("BLE_IR_LOG_LEVEL", "BLE_IR_TX_DEVICE", "BLE_IR_DEVICE_NAME", "BLE_IR_SETTLE_SECONDS"):
        monkeypatch.delenv(name, raising=False)
    config = BridgeConfig.from_env()
    assert config == BridgeConfig(log_level="INFO", tx_device="/dev/lirc-tx",
                                  device_name="gatt_server", settle_seconds=1.0)


def test_config_from_env(monkeypatch):
    monkeypatch.setenv("BLE_IR_LOG_LEVEL", "debug")
    monkeypatch.setenv("BLE_IR_TX_DEVICE", "/dev/lirc1")
    monkeypatch.setenv("BLE_IR_DEVICE_NAME", "living-room")
    monkeypatch.setenv("BLE_IR_SETTLE_SECONDS", "2.5")
    config = BridgeConfig.from_env()
    assert config.log_level == "DEBUG"
    assert config.tx_device == "/dev/lirc1"
    assert config.device_name == "living-room"
    assert config.settle_seconds == 2.5


def test_config_invalid_values_fall_back(monkeypatch):
    monkeypatch.setenv("BLE_IR_LOG_LEVEL", "chatty")
    monkeypatch.setenv("BLE_IR_SETTLE_SECONDS", "-1")
    config = BridgeConfig.from_env()
    assert config.log_level == "INFO"
    assert config.settle_seconds == 1.0

    monkeypatch.setenv("BLE_IR_SETTLE_SECONDS", "soon")
    assert BridgeConfig.from_env().settle_seconds == 1.0


def test_send_dry_run(capsys):
    assert main(["send", "sony12:0x10015", "--dry-run", "--tx-device", "/dev/lirc1"]) == 0
    out = capsys.readouterr().out.strip()
    assert out == (
        "ir-ctl -v -d /dev/lirc1 -g 600"
        " -S sony12:0x10015 -S sony12:0x10015 -S sony12:0x10015"
    )


def test_send_rejects_missing_colon(capsys):
    assert main(["send", "nec0x40"]) == 1
    assert "expected PROTOCOL:SCANCODE" in capsys.readouterr().out


def test_send_runs_ir_ctl():
    done = subprocess.CompletedProcess([], 0, stdout="", stderr="")
    with patch("ble_ir_bridge.ir_ctl.subprocess.run", return_value=done) as run:
        assert main(["send", "nec:0x40"]) == 0
    argv = run.call_args.args[0]
    assert argv[0] == "ir-ctl"
    assert argv[-2:] == ["-S", "nec:0x40"]


def test_keytable_file_json(tmp_path, capsys):
    saved = tmp_path / "keytable.txt"
    saved.write_text(
        "Found /sys/class/rc/rc0/ (/dev/input/event0) with:\n"
        "\tName: gpio_ir_recv\n"
        "\tLIRC device: /dev/lirc0\n"
    )
    assert main(["keytable", str(saved), "--json"]) == 0
    out = capsys.readouterr().out
    assert '"LIRC device": "/dev/lirc0"' in out
    assert '"__sysdev__": "/sys/class/rc/rc0/ (/dev/input/event0)"' in out


def test_check_aborts_without_tools(capsys):
    with patch("ble_ir_bridge.environment.shutil.which", return_value=None):
        assert main(["check"]) == 1
    assert "is not installed" in capsys.readouterr().out


def test_serve_stops_at_gate(capsys):
    with patch("ble_ir_bridge.environment.shutil.which", return_value=None), \
            patch("ble_ir_bridge.bridge.serve") as serve:
        assert main(["serve"]) == 0
    serve.assert_not_called()


def test_no_command_prints_help(capsys):
    assert main([]) == 1
    assert "usage: ble-ir-bridge" in capsys.readouterr().out


def test_send_code_named_like_a_subcommand(capsys):
    assert main(["send", "serve:1", "--tx-device", "/dev/lirc1", "--dry-run"]) == 0
    assert capsys.readouterr().out.strip() == "ir-ctl -v -d /dev/lirc1 -S serve:1"
