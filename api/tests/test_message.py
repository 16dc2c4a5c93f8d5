"""Tests for Message and its text/event-stream framing."""

import pytest

from eventcast.services.message import Message, render


def test_render_all_fields():
    message = Message(id="42", event="update", data=("line1", "line2"), retry=3000)

    rendered = render(message).decode()

    assert rendered.endswith("\n\n")
    lines = rendered[:-2].split("\n")
    assert sorted(lines) == sorted(
        ["id:42", "event:update", "retry:3000", "data:line1", "data:line2"]
    )


def test_render_data_lines_keep_order():
    rendered = render(Message.create("a\nb\nc")).decode()
    assert rendered == "data:a\ndata:b\ndata:c\n\n"


def test_render_omits_empty_fields():
    rendered = render(Message.simple("hello")).decode()
    assert rendered == "data:hello\n\n"


def test_render_without_data_is_empty_block():
    assert render(Message()) == b"\n"
    assert render(Message(id="7")) == b"id:7\n\n"


def test_create_from_list_splits_embedded_newlines():
    message = Message.create(["one", "two\nthree", ""])
    assert message.data == ("one", "two", "three", "")


def test_create_handles_crlf():
    assert Message.create("x\r\ny").data == ("x", "y")


def test_with_retry_returns_copy():
    message = Message.simple("x")
    updated = message.with_retry(5000)

    assert updated.retry == 5000
    assert message.retry == 0
    assert message.with_retry(0) is message


def test_render_is_utf8():
    assert render(Message.simple("テスト")) == "data:テスト\n\n".encode("utf-8")


@pytest.mark.parametrize("field", ["id", "event"])
def test_line_breaks_rejected_in_single_line_fields(field):
    with pytest.raises(ValueError):
        Message(**{field: "a\nb"})


def test_only_sse_line_terminators_split_data():
    assert Message.create("a b").data == ("a b",)
    assert Message.create("a\x0cb\x0bc\x85d").data == ("a\x0cb\x0bc\x85d",)
    assert Message.create("a\rb\r\nc").data == ("a", "b", "c")


def test_trailing_empty_line_is_kept():
    assert Message.create("a\n").data == ("a", "")
    assert render(Message.create("a\n")) == b"data:a\ndata:\n\n"


def test_constructor_splits_embedded_line_breaks():
    message = Message(data=("a\nid:evil",))

    assert message.data == ("a", "id:evil")
    assert render(message) == b"data:a\ndata:id:evil\n\n"


def test_constructor_accepts_string_payload():
    message = Message(data="hi")

    assert message.data == ("hi",)
    assert render(message) == b"data:hi\n\n"
