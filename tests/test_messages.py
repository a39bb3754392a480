import pytest

from boltgraph.errors import DeserializationError, UnknownMessage
from boltgraph.messages import (
    Failure,
    Record,
    Request,
    Signature,
    Success,
    begin,
    bye,
    commit,
    discard,
    hello,
    parse_response,
    pull,
    reset,
    rollback,
    run,
)
from boltgraph.packstream import unpack


def test_serialize_begin():
    data = begin({"tx_timeout": 2000}).to_bytes()
    assert data == bytes([0xB1, 0x11, 0xA1, 0x8A]) + b"tx_timeout" + bytes([0xC9, 0x07, 0xD0])


def test_begin_without_extra_has_empty_map():
    assert begin().to_bytes() == bytes([0xB1, 0x11, 0xA0])


def test_serialize_bye():
    assert bye().to_bytes() == bytes([0xB0, 0x02])


def test_serialize_commit():
    assert commit().to_bytes() == bytes([0xB0, 0x12])


def test_serialize_reset():
    assert reset().to_bytes() == bytes([0xB0, 0x0F])


def test_serialize_rollback():
    assert rollback().to_bytes() == bytes([0xB0, 0x13])


def test_serialize_discard_message():
    data = discard(42, 1).to_bytes()
    assert data[:2] == bytes([0xB1, 0x2F])
    extra = unpack(data[2:])
    assert extra["n"] == 42
    assert extra["qid"] == 1


def test_serialize_discard_with_default_value():
    data = discard().to_bytes()
    assert data[:2] == bytes([0xB1, 0x2F])
    assert data.count(0xFF) == 2
    extra = unpack(data[2:])
    assert extra == {"n": -1, "qid": -1}


def test_serialize_pull_message():
    data = pull(42, 1).to_bytes()
    assert data[:2] == bytes([0xB1, 0x3F])
    extra = unpack(data[2:])
    assert extra["n"] == 42
    assert extra["qid"] == 1


def test_serialize_pull_with_default_value():
    data = pull().to_bytes()
    assert data[:2] == bytes([0xB1, 0x3F])
    assert data.count(0xFF) == 2
    extra = unpack(data[2:])
    assert extra == {"n": -1, "qid": -1}


def test_serialize_hello():
    request = Request(Signature.HELLO, ({"scheme": "basic"},))
    expected = bytes([0xB1, 0x01, 0xA1, 0x86]) + b"scheme" + bytes([0x85]) + b"basic"
    assert request.to_bytes() == expected


def test_hello_factory_fields():
    password = "password"
    request = hello("agent", "user", password)
    assert request.signature == Signature.HELLO
    assert list(request.fields[0].items()) == [
        ("user_agent", "agent"),
        ("scheme", "basic"),
        ("principal", "user"),
        ("credentials", "password"),
    ]


def test_serialize_run():
    data = run("test", "query", {"k": "v"}).to_bytes()
    expected = (
        bytes([0xB3, 0x10, 0x85])
        + b"query"
        + bytes([0xA1, 0x81])
        + b"k"
        + bytes([0x81])
        + b"v"
        + bytes([0xA1, 0x82])
        + b"db"
        + bytes([0x84])
        + b"test"
    )
    assert data == expected


def test_serialize_run_with_no_params():
    data = run("", "query", {}).to_bytes()
    expected = (
        bytes([0xB3, 0x10, 0x85])
        + b"query"
        + bytes([0xA0, 0xA1, 0x82])
        + b"db"
        + bytes([0x80])
    )
    assert data == expected


def test_deserialize_failure():
    data = (
        bytes([0xB1, 0x7F, 0xA2, 0x84])
        + b"code"
        + bytes([0xD0, 0x25])
        + b"Neo.ClientError.Security.Unauthorized"
        + bytes([0x87])
        + b"message"
        + bytes([0xD0, 0x39])
        + b"The client is unauthorized due to authentication failure."
    )
    response = parse_response(data)
    assert isinstance(response, Failure)
    assert response.get("code") == "Neo.ClientError.Security.Unauthorized"
    assert response.get("message") == "The client is unauthorized due to authentication failure."


def test_deserialize_success():
    data = (
        bytes([0xB1, 0x70, 0xA2, 0x86])
        + b"server"
        + bytes([0x8B])
        + b"Neo4j/4.1.4"
        + bytes([0x8D])
        + b"connection_id"
        + bytes([0x87])
        + b"bolt-31"
    )
    response = parse_response(data)
    assert isinstance(response, Success)
    assert response.get("server") == "Neo4j/4.1.4"
    assert response.get("connection_id") == "bolt-31"


def test_success_get_default():
    response = parse_response(bytes([0xB1, 0x70, 0xA0]))
    assert response.get("has_more", False) is False
    assert response.get("qid") is None


def test_deserialize_record_message():
    response = parse_response(bytes([0xB1, 0x71, 0x92, 0x81, 0x61, 0x81, 0x62]))
    assert isinstance(response, Record)
    assert len(response.data) == 2
    assert response.data == ["a", "b"]


@pytest.mark.parametrize(
    "data",
    [
        b"",
        bytes([0xB1]),
        bytes([0xB1, 0x7E, 0xA0]),
        bytes([0xB0, 0x0F]),
        bytes([0xB1, 0x11, 0xA0]),
    ],
)
def test_unknown_message(data):
    with pytest.raises(UnknownMessage):
        parse_response(data)


def test_response_with_wrong_payload_type():
    with pytest.raises(DeserializationError):
        parse_response(bytes([0xB1, 0x70, 0x90]))


def test_truncated_response():
    with pytest.raises(DeserializationError):
        parse_response(bytes([0xB1, 0x71, 0x92, 0x81]))