from __future__ import annotations

import pytest
from hypothesis import given
from hypothesis import strategies as st

from mirrordeck.bridge.adb import DEVICE_LIST_HEADER, parse_device_list
from mirrordeck.errors import ErrorKind, MirrorDeckError

_TOKEN = st.text(alphabet=st.characters(min_codepoint=33, max_codepoint=126), min_size=1, max_size=24)
_STATES = st.sampled_from(["device", "offline", "unauthorized", "recovery", "sideload", "bootloader"])


@given(st.lists(st.tuples(_TOKEN, _STATES), max_size=20), st.sampled_from(["\t", " ", "  \t "]))
def test_parse_device_list_keeps_every_row_in_order(rows: list[tuple[str, str]], separator: str) -> None:
    lines = [DEVICE_LIST_HEADER, ""] + [f"{serial}{separator}{state}" for serial, state in rows]

    devices = parse_device_list("\n".join(lines) + "\n")

    assert [(device.id, device.state) for device in devices] == rows


@given(st.lists(st.tuples(_TOKEN, _STATES), max_size=10), _TOKEN)
def test_single_token_line_always_fails_the_whole_listing(rows: list[tuple[str, str]], lone: str) -> None:
    lines = [DEVICE_LIST_HEADER] + [f"{serial}\t{state}" for serial, state in rows] + [lone]

    with pytest.raises(MirrorDeckError) as excinfo:
        parse_device_list("\n".join(lines))

    assert excinfo.value.kind == ErrorKind.PARSE
