"""Frame decoding for the relay's server-sent event stream.

The transport hands us byte chunks cut at arbitrary points, so a chunk can end
in the middle of a line or even in the middle of a UTF-8 character. Lines are
only emitted once their newline delimiter has been seen.
"""

import codecs
from collections.abc import AsyncIterable, AsyncIterator


class FrameDecoder:
    """Reassemble complete text lines from raw byte chunks.

    Keeps the trailing, not yet terminated fragment of the last chunk in a
    carry-over buffer and prepends it to the next one.
    """

    def __init__(self, encoding: str = "utf-8") -> None:
        self._decoder = codecs.getincrementaldecoder(encoding)(errors="replace")
        self._carry = ""

    @property
    def pending(self) -> str:
        """Text received after the last newline."""
        return self._carry

    def feed(self, chunk: bytes) -> list[str]:
        """Consume one chunk and return the lines it completed.

        Args:
            chunk: Raw bytes as delivered by the transport.

        Returns:
            Complete lines in arrival order, without their delimiters.
        """
        self._carry += self._decoder.decode(chunk)
        *lines, self._carry = self._carry.split("\n")
        return [line.removesuffix("\r") for line in lines]

    def flush(self) -> list[str]:
        """Return the remaining fragment at end of stream, if it holds any text."""
        rest = (self._carry + self._decoder.decode(b"", final=True)).removesuffix("\r")
        self._carry = ""
        self._decoder.reset()
        return [rest] if rest.strip() else []


async def iter_lines(chunks: AsyncIterable[bytes]) -> AsyncIterator[str]:
    """Lazily turn a byte stream into complete lines.

    The sequence is finite and cannot be restarted: it ends when ``chunks`` is
    exhausted, after the final partial line (if any) has been flushed.

    Args:
        chunks: Async iterable of raw byte chunks.

    Yields:
        Complete text lines in arrival order.
    """
    decoder = FrameDecoder()
    async for chunk in chunks:
        for line in decoder.feed(chunk):
            yield line
    for line in decoder.flush():
        yield line
