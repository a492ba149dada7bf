"""Tests for reassembling tagged commands from streamed text."""

import pytest

from ble_ir_bridge.framing import (
    CommandBuffer,
    CommandFramer,
    MalformedCommandError,
    ParsedCommand,
    parse_command_text,
)


def feed(*fragments):
    """Feed fragments one by one, returning every extracted command and the buffer."""
    framer = CommandFramer()
    buffer = CommandBuffer()
    commands = []
    for fragment in fragments:
        buffer.append(fragment)
        command = framer.process(buffer)
        if command is not None:
            commands.append(command)
    return commands, buffer


def test_single_write():
    commands, buffer = feed("<dummycmd>nec:0x40</dummycmd>")
    assert commands == [ParsedCommand("nec", "0x40")]
    assert len(buffer) == 0


@pytest.mark.parametrize("fragments", [
    ("<dummy", "cmd>sony12:0x10", "015</dummycmd>"),
    ("<dummycmd>", "sony12:", "0x10015", "</dummy", "cmd>"),
    ("<", "d", "ummycmd>sony12:0x10015<", "/dummycmd>"),
])
def test_fragmented_writes_give_same_command(fragments):
    """Splitting the text across writes must not change the result."""
    whole, _ = feed("".join(fragments))
    split, buffer = feed(*fragments)
    assert split == whole == [ParsedCommand("sony12", "0x10015")]
    assert len(buffer) == 0


def test_open_marker_only_leaves_buffer_untouched():
    buffer = CommandBuffer("<dummycmd>nec:0x4")
    assert CommandFramer().process(buffer) is None
    assert buffer.text == "<dummycmd>nec:0x4"


def test_incomplete_command_waits_for_more():
    commands, buffer = feed("<dummycmd>nec", ":0x40</dum")
    assert commands == []
    assert buffer.text == "<dummycmd>nec:0x40</dum"


def test_trailing_data_is_discarded():
    commands, buffer = feed("<dummycmd>rc5:0x1e01</dummycmd><dummycmd>nec:0x4")
    assert commands == [ParsedCommand("rc5", "0x1e01")]
    assert buffer.text == ""


def test_second_command_in_same_write_is_lost():
    commands, buffer = feed("<dummycmd>nec:1</dummycmd><dummycmd>nec:2</dummycmd>")
    assert commands == [ParsedCommand("nec", "1")]
    assert len(buffer) == 0


def test_latest_open_marker_before_close_wins():
    commands, _ = feed("<dummycmd>garbage<dummycmd>nec:0x40</dummycmd>")
    assert commands == [ParsedCommand("nec", "0x40")]


def test_leading_noise_is_ignored():
    commands, _ = feed("hello <dummycmd>nec:0x40</dummycmd>")
    assert commands == [ParsedCommand("nec", "0x40")]


def test_missing_colon_clears_buffer():
    buffer = CommandBuffer("<dummycmd>nec0x40</dummycmd>")
    assert CommandFramer().process(buffer) is None
    assert buffer.text == ""


def test_close_without_open_clears_buffer():
    buffer = CommandBuffer("nec:0x40</dummycmd>")
    assert CommandFramer().process(buffer) is None
    assert buffer.text == ""


def test_framer_recovers_after_malformed_command():
    commands, buffer = feed("<dummycmd>bad</dummycmd>", "<dummycmd>nec:7</dummycmd>")
    assert commands == [ParsedCommand("nec", "7")]


def test_scancode_keeps_later_colons():
    assert parse_command_text("rc6_mce:0x800f:0410") == ParsedCommand("rc6_mce", "0x800f:0410")


def test_empty_protocol_and_scancode_are_accepted():
    assert parse_command_text(":") == ParsedCommand("", "")


def test_parse_command_text_without_colon():
    with pytest.raises(MalformedCommandError):
        parse_command_text("nec")


def test_send_value():
    assert ParsedCommand("sony12", "0x10015").send_value == "sony12:0x10015"


def test_unicode_text_survives():
    commands, _ = feed("<dummycmd>nec:é", "ü</dummycmd>")
    assert commands == [ParsedCommand("nec", "éü")]
