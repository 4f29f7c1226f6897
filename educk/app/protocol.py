"""
HTTP/1.1 connection protocol: uvicorn's h11 protocol plus request-head limits.

- EOF with a partial request head buffered → 400, connection closed
- no complete request head within keep_alive_timeout → 408 (partial head)
  or a silent close (nothing received)

The deadline is armed when the connection opens and after every response,
and cancelled once h11 has parsed a request line and headers. Bytes that
trickle in do not extend it.
"""

import asyncio
import logging

import h11
from uvicorn.protocols.http.h11_impl import STATUS_PHRASES, H11Protocol

logger = logging.getLogger(__name__)


class EduckH11Protocol(H11Protocol):
    """h11 protocol that never leaves a connection waiting on a request head."""

    head_deadline: asyncio.TimerHandle | None = None

    # =========================================================================
    # asyncio.Protocol
    # =========================================================================

    def connection_made(self, transport: asyncio.Transport) -> None:  # type: ignore[override]
        super().connection_made(transport)
        self._arm_head_deadline()

    def connection_lost(self, exc: Exception | None) -> None:
        self._cancel_head_deadline()
        super().connection_lost(exc)

    def data_received(self, data: bytes) -> None:
        super().data_received(data)
        if not self._awaiting_head():
            self._cancel_head_deadline()

    def eof_received(self) -> None:
        if self._awaiting_head() and self._buffered_head():
            logger.warning(f"Incomplete request head from {self._peer()} before EOF")
            self.send_error_response(400, "Incomplete request head")

    def on_response_complete(self) -> None:
        super().on_response_complete()
        if not self.transport.is_closing() and self._awaiting_head():
            # the head deadline replaces uvicorn's keep-alive timer between requests
            self._unset_keepalive_if_required()
            self._arm_head_deadline()

    # =========================================================================
    # Request head deadline
    # =========================================================================

    def _arm_head_deadline(self) -> None:
        self._cancel_head_deadline()
        self.head_deadline = self.loop.call_later(self.timeout_keep_alive, self.head_deadline_handler)

    def _cancel_head_deadline(self) -> None:
        if self.head_deadline is not None:
            self.head_deadline.cancel()
            self.head_deadline = None

    def head_deadline_handler(self) -> None:
        self.head_deadline = None
        if self.transport.is_closing() or not self._awaiting_head():
            return

        if self._buffered_head():
            logger.warning(f"Request head from {self._peer()} not completed in {self.timeout_keep_alive}s")
            self.send_error_response(408, "Request head not received in time")
        else:
            self.conn.send(h11.ConnectionClosed())
            self.transport.close()

    def _awaiting_head(self) -> bool:
        return self.conn.our_state is h11.IDLE and self.conn.their_state is h11.IDLE

    def _buffered_head(self) -> bool:
        buffered, _ = self.conn.trailing_data
        return bool(buffered)

    def _peer(self) -> str:
        return "%s:%d" % self.client if self.client else "client"

    # =========================================================================
    # Responses
    # =========================================================================

    def send_error_response(self, status_code: int, msg: str) -> None:
        """Plain-text error response written straight to the transport, then close."""
        headers = [
            (b"content-type", b"text/plain; charset=utf-8"),
            (b"connection", b"close"),
        ]
        event = h11.Response(status_code=status_code, headers=headers, reason=STATUS_PHRASES[status_code])
        self.transport.write(self.conn.send(event))
        self.transport.write(self.conn.send(h11.Data(data=msg.encode("ascii"))))
        self.transport.write(self.conn.send(h11.EndOfMessage()))
        self.transport.close()
