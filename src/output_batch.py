import logging
from typing import BinaryIO

BATCH_SIZE = 4096 # Bytes accumulated before a write to the output file
SEPARATOR = b"\n"


class OutputBatch:
    """
    Coalesces stripped lines into large writes.

    Lines are joined with a single newline, including across flush
    boundaries, and no newline follows the last line.
    """

    def __init__(self, writer: BinaryIO, capacity: int = BATCH_SIZE):
        if capacity < 1:
            raise ValueError(f"Batch capacity must be >= 1, got {capacity}")
        self.writer = writer
        self.capacity = capacity
        self._buffer = bytearray()
        self._has_output = False # Any line appended so far, flushed or not
        self.bytes_written = 0
        self.flushes = 0

    def __len__(self):
        return len(self._buffer)

    def append(self, line: bytes):
        if len(self._buffer) + len(line) + 1 > self.capacity:
            self.flush()
        if self._has_output:
            self._buffer += SEPARATOR
        self._buffer += line
        self._has_output = True

    def flush(self):
        """Write out whatever is buffered. Flushing an empty batch is a no-op."""
        if not self._buffer:
            return
        self.writer.write(bytes(self._buffer))
        self.bytes_written += len(self._buffer)
        self.flushes += 1
        logging.debug(f"Flushed {len(self._buffer)} bytes (batch #{self.flushes})")
        self._buffer.clear()
