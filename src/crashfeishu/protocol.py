"""Supervisor event listener protocol.

The listener and supervisord exchange messages over the listener's
stdin/stdout:

1. Listener writes ``READY\\n``.
2. Supervisor writes a header line of tokens ending in ``\\n``. The ``len``
   token gives the size of the payload that follows.
3. Listener reads exactly ``len`` payload bytes.
4. Listener writes ``RESULT 2\\nOK`` or ``RESULT 4\\nFAIL`` (no trailing
   newline) and starts over at step 1.

Any malformed reply desynchronizes supervisord for the rest of the
listener's life, so channel failures are fatal.
"""

from dataclasses import dataclass
from typing import BinaryIO

from crashfeishu.errors import ChannelClosedError, ProtocolError, TokenSetError
from crashfeishu.tokenset import TokenSet, parse_token_set

__all__ = [
    "EventListenerProtocol",
    "Frame",
    "ProtocolError",
]

READY = b"READY\n"
RESULT_OK = "OK"
RESULT_FAIL = "FAIL"


@dataclass(frozen=True)
class Frame:
    """One event delivered by supervisord.

    Attributes:
        headers: Decoded header line.
        payload: Raw event body, exactly ``headers["len"]`` bytes.
    """

    headers: TokenSet
    payload: bytes


class EventListenerProtocol:
    """Drives the READY / event / RESULT exchange over a byte channel.

    Holds no state between cycles. Usage:

        protocol = EventListenerProtocol(sys.stdin.buffer, sys.stdout.buffer)
        while True:
            frame = protocol.wait()
            ...
            protocol.ok()
    """

    def __init__(self, stdin: BinaryIO, stdout: BinaryIO):
        """Initialize protocol driver.

        Args:
            stdin: Binary stream supervisord writes events to.
            stdout: Binary stream supervisord reads replies from.
        """
        self._stdin = stdin
        self._stdout = stdout

    def ready(self) -> None:
        """Announce that the listener can accept the next event."""
        self._write(READY)

    def wait(self) -> Frame:
        """Announce readiness and block until the next event arrives.

        Returns:
            The received frame.

        Raises:
            ChannelClosedError: If stdin is at EOF.
            ProtocolError: If the header line or payload is malformed.
        """
        self.ready()

        line = self._stdin.readline()
        if not line:
            raise ChannelClosedError("Supervisor closed the event stream")
        if not line.endswith(b"\n"):
            raise ProtocolError(f"Truncated header line: {line!r}")

        try:
            headers = parse_token_set(line.decode("utf-8"))
        except (UnicodeDecodeError, TokenSetError) as e:
            raise ProtocolError(f"Malformed header line: {e}") from e

        length = self._payload_length(headers)
        payload = self._read_exact(length)
        return Frame(headers=headers, payload=payload)

    def ok(self) -> None:
        """Acknowledge the current event as processed."""
        self.send(RESULT_OK)

    def fail(self) -> None:
        """Reject the current event (supervisord will rebuffer it)."""
        self.send(RESULT_FAIL)

    def send(self, body: str) -> None:
        """Write a ``RESULT`` reply with a length-prefixed body."""
        data = body.encode("utf-8")
        self._write(b"RESULT %d\n%s" % (len(data), data))

    def _payload_length(self, headers: TokenSet) -> int:
        """Extract the payload size from the header tokens."""
        if "len" not in headers:
            raise ProtocolError("Header line has no len token")
        raw = headers["len"]
        if not (raw.isascii() and raw.isdigit()):
            raise ProtocolError(f"Invalid len token: {raw!r}")
        return int(raw)

    def _read_exact(self, length: int) -> bytes:
        """Read exactly length bytes from stdin."""
        chunks = []
        remaining = length
        while remaining > 0:
            chunk = self._stdin.read(remaining)
            if not chunk:
                raise ProtocolError(
                    f"Short read: expected {length} payload bytes, "
                    f"got {length - remaining}"
                )
            chunks.append(chunk)
            remaining -= len(chunk)
        return b"".join(chunks)

    def _write(self, data: bytes) -> None:
        try:
            self._stdout.write(data)
            self._stdout.flush()
        except (OSError, ValueError) as e:
            raise ChannelClosedError(f"Cannot write to supervisor: {e}") from e
