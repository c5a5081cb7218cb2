import json

import pytest

from secdocker.config import Config, GeneralConf, RestrictionsConf
from secdocker.intercept.mangle import (
    Data,
    HttpRequest,
    forbidden_response,
    hex_dump,
    parse_http_request,
)


@pytest.fixture
def config():
    return Config(
        general=GeneralConf(environment=["MY_ENV=true", "MY_ENV2=1"], user="1000"),
        restrictions=RestrictionsConf(
            ports=["8080", "3000"],
            mounts=["/root"],
            users=["root"],
            environment=["USER=0"],
            security_policies=["privileged"],
            privileged=True,
        ),
    )


def _request(target: bytes, body: bytes) -> bytes:
    return (
        b"POST " + target + b" HTTP/1.1\r\n"
        b"Host: docker\r\n"
        b"content-type: application/json\r\n"
        + f"Content-Length: {len(body)}\r\n".encode()
        + b"\r\n"
        + body
    )


def test_parse_http_request_fields():
    request = parse_http_request(_request(b"/v1.24/containers/create?name=x", b"{}"))
    assert request.method == "POST"
    assert request.target == "/v1.24/containers/create?name=x"
    assert request.path == "/v1.24/containers/create"
    assert request.body == b"{}"
    assert request.header("Content-Type") == "application/json"
    assert request.header("host") == "docker"


def test_request_round_trip():
    request = parse_http_request(_request(b"/containers/create", b'{"Image":"busybox"}'))
    again = parse_http_request(request.to_bytes())
    assert again.method == request.method
    assert again.target == request.target
    assert again.body == request.body
    assert sorted(again.headers) == sorted(request.headers)


def test_to_bytes_updates_content_length():
    request = parse_http_request(_request(b"/containers/create", b"{}"))
    request.body = b'{"Image":"busybox"}'
    again = parse_http_request(request.to_bytes())
    assert again.body == request.body
    assert again.header("Content-Length") == str(len(request.body))


def test_to_bytes_starts_with_request_line():
    request = HttpRequest("GET", "/info", headers=[("Host", "docker")])
    assert request.to_bytes().startswith(b"GET /info HTTP/1.1\r\nHost: docker\r\n")


def test_parse_chunked_body():
    raw = (
        b"POST /containers/create HTTP/1.1\r\n"
        b"Transfer-Encoding: chunked\r\n\r\n"
        b"3\r\nabc\r\n2\r\nde\r\n0\r\n\r\n"
    )
    assert parse_http_request(raw).body == b"abcde"


@pytest.mark.parametrize(
    "raw",
    [
        b"POST /containers/create HTTP/1.1\r\nHost: docker\r\n",
        b"not a request\r\n\r\n",
        b"POST /x HTTP/1.1\r\nContent-Length: 10\r\n\r\nshort",
        b"POST /x HTTP/1.1\r\nbroken header\r\n\r\n",
        b"POST /x HTTP/1.1\r\nTransfer-Encoding: chunked\r\n\r\n5\r\nab",
    ],
)
def test_parse_rejects_malformed(raw):
    with pytest.raises(ValueError):
        parse_http_request(raw)


def test_forbidden_response():
    response = forbidden_response("Option forbidden")
    assert response.startswith(b"HTTP/1.1 403 Forbidden\r\n")
    head, _, body = response.partition(b"\r\n\r\n")
    assert body == b"Option forbidden"
    assert f"Content-Length: {len(body)}".encode() in head


def test_hex_dump_first_line():
    dump = hex_dump(b"Go is an open source programming language.")
    assert dump.splitlines()[0] == (
        "00000000  47 6f 20 69 73 20 61 6e  20 6f 70 65 6e 20 73 6f  |Go is an open so|"
    )


def test_hex_dump_columns_align():
    lines = hex_dump(bytes(range(40))).splitlines()
    assert len(lines) == 3
    assert len({line.index("|") for line in lines}) == 1
    assert all(line.endswith("|") for line in lines)


def test_hex_dump_nonprintable_and_empty():
    assert hex_dump(b"") == ""
    assert hex_dump(b"\x00A\x7f").rstrip("\n").endswith("|.A.|")


def test_mangle_rewrites_allowed_request(config, tmp_path):
    body = json.dumps({"Image": "busybox", "Env": ["MY_ENV=false"]}).encode()
    data = Data(_request(b"/v1.24/containers/create", body), config=config, plugins_dir=tmp_path)
    data.mangle()
    assert data.forbidden is False
    request = parse_http_request(data.payload)
    rewritten = json.loads(request.body)
    assert rewritten["User"] == "1000"
    assert sorted(rewritten["Env"]) == ["MY_ENV2=1", "MY_ENV=true"]
    assert request.header("Content-Length") == str(len(request.body))


def test_mangle_refuses_forbidden_request(config, tmp_path):
    body = json.dumps({"Image": "busybox", "User": "root"}).encode()
    data = Data(_request(b"/containers/create", body), config=config, plugins_dir=tmp_path)
    data.mangle()
    assert data.forbidden is True
    assert data.payload == forbidden_response("Option forbidden")


def test_mangle_leaves_other_traffic(config, tmp_path):
    raw = _request(b"/containers/json", b'{"User":"root"}')
    data = Data(raw, config=config, plugins_dir=tmp_path)
    data.mangle()
    assert data.payload == raw
    assert data.forbidden is False

    garbage = Data(b"\x16\x03\x01binary", config=config, plugins_dir=tmp_path)
    garbage.mangle()
    assert garbage.payload == b"\x16\x03\x01binary"


def test_pretty_print_is_hex_dump():
    data = Data(b"hello")
    assert data.pretty_print() == hex_dump(b"hello")
    assert "|hello|" in data.pretty_print()