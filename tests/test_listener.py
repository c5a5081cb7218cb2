import socket
import ssl

import pytest

from secdocker.intercept.listener import TCPListener, TLSListener


def test_accept_returns_connected_socket():
    listener = TCPListener()
    listener.listen(("127.0.0.1", 0))
    try:
        with socket.create_connection(listener.address) as client:
            conn = listener.accept()
            with conn:
                assert conn.getpeername() == client.getsockname()
                client.sendall(b"ping")
                assert conn.recv(4) == b"ping"
    finally:
        listener.close()


def test_accept_before_listen_raises():
    with pytest.raises(RuntimeError):
        TCPListener().accept()


def test_close_before_listen_raises():
    with pytest.raises(RuntimeError):
        TCPListener().close()


def test_close_stops_listening():
    listener = TCPListener()
    listener.listen(("127.0.0.1", 0))
    address = listener.address
    listener.close()
    with pytest.raises(RuntimeError):
        listener.accept()
    with pytest.raises(ConnectionRefusedError):
        socket.create_connection(address, timeout=2)


def test_context_manager_closes():
    with TCPListener() as listener:
        listener.listen(("127.0.0.1", 0))
        bound_port = listener.address[1]
    assert bound_port > 0
    with pytest.raises(RuntimeError):
        listener.accept()


def test_tls_listen_requires_context():
    listener = TLSListener()
    with pytest.raises(ValueError):
        listener.listen(("127.0.0.1", 0), None)
    with pytest.raises(RuntimeError):
        listener.accept()


def test_tls_accept_wraps_connection():
    context = ssl.SSLContext(ssl.PROTOCOL_TLS_SERVER)
    listener = TLSListener()
    listener.listen(("127.0.0.1", 0), context)
    try:
        assert listener.context is context
        with socket.create_connection(listener.address) as client:
            conn = listener.accept()
            with conn:
                assert conn.server_side is True
                assert conn.getpeername() == client.getsockname()
    finally:
        listener.close()