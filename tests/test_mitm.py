import pytest

from proxyweave.mitm import (
    MitmHelloRequest,
    MitmHelloResponse,
    flags_to_protos,
    protos_to_flags,
)


def test_request_pack_bypass_only():
    assert MitmHelloRequest(bypass=True).pack() == b"\x01\x00\x00\x00"


def test_request_pack_field_order():
    request = MitmHelloRequest(need_proto=True, support_h2=True)
    assert request.pack() == b"\x00\x01\x00\x01"


@pytest.mark.parametrize(
    "request_",
    [
        MitmHelloRequest(),
        MitmHelloRequest(bypass=True),
        MitmHelloRequest(need_proto=True, support_h1=True),
        MitmHelloRequest(True, True, True, True),
    ],
)
def test_request_round_trip(request_):
    assert MitmHelloRequest.unpack(request_.pack()) == request_


def test_request_unpack_nonzero_is_true_and_ignores_extra():
    request = MitmHelloRequest.unpack(b"\x00\x02\x00\xff\x01")
    assert request == MitmHelloRequest(need_proto=True, support_h2=True)


def test_request_unpack_short_data():
    with pytest.raises(ValueError):
        MitmHelloRequest.unpack(b"\x01\x00")


def test_response_round_trip():
    assert MitmHelloResponse(use_h2=True).pack() == b"\x01"
    assert MitmHelloResponse.unpack(b"\x01") == MitmHelloResponse(use_h2=True)
    assert MitmHelloResponse.unpack(b"\x00") == MitmHelloResponse(use_h2=False)


def test_response_unpack_empty():
    with pytest.raises(ValueError):
        MitmHelloResponse.unpack(b"")


@pytest.mark.parametrize(
    "protos, flags",
    [
        ([], (False, False)),
        (["http/1.1"], (True, False)),
        (["h2"], (False, True)),
        (["h2", "http/1.1"], (True, True)),
        (["spdy/3"], (False, False)),
    ],
)
def test_protos_to_flags(protos, flags):
    assert protos_to_flags(protos) == flags


@pytest.mark.parametrize(
    "flags, protos",
    [
        ((False, False), []),
        ((True, False), ["http/1.1"]),
        ((False, True), ["h2"]),
        ((True, True), ["h2", "http/1.1"]),
    ],
)
def test_flags_to_protos(flags, protos):
    assert flags_to_protos(*flags) == protos


def test_flags_round_trip():
    for h1 in (False, True):
        for h2 in (False, True):
            assert protos_to_flags(flags_to_protos(h1, h2)) == (h1, h2)