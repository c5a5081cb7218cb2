"""Listeners that accept intercepted TCP and TLS connections."""

from __future__ import annotations

import socket
import ssl


class TCPListener:
    """Accepts plain TCP connections."""

    def __init__(self):
        self._socket: socket.socket | None = None

    def __enter__(self) -> TCPListener:
        return self

    def __exit__(self, *exc_info) -> None:
        if self._socket is not None:
            self.close()

    def _listening(self) -> socket.socket:
        if self._socket is None:
            raise RuntimeError("listener is not listening")
        return self._socket

    @property
    def address(self):
        """The local address the listener is bound to."""
        return self._listening().getsockname()

    def listen(self, address) -> None:
        """Bind to ``address`` (a host and port pair) and start listening."""
        self._socket = socket.create_server(address)

    def accept(self) -> socket.socket:
        """Wait for and return the next connection."""
        conn, _ = self._listening().accept()
        return conn

    def close(self) -> None:
        """Stop listening."""
        sock = self._listening()
        self._socket = None
        sock.close()


class TLSListener(TCPListener):
    """Accepts TCP connections and serves TLS on them."""

    def __init__(self):
        super().__init__()
        self.context: ssl.SSLContext | None = None

    def listen(self, address, context: ssl.SSLContext) -> None:
        """Bind to ``address`` and serve TLS with ``context``."""
        if context is None:
            raise ValueError("no TLS context given")
        super().listen(address)
        self.context = context

    def accept(self) -> ssl.SSLSocket:
        """Return the next connection; the handshake runs on first use."""
        conn = super().accept()
        try:
            return self.context.wrap_socket(
                conn, server_side=True, do_handshake_on_connect=False
            )
        except OSError:
            conn.close()
            raise

    def close(self) -> None:
        super().close()