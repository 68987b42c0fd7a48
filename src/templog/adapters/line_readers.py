"""Line sources for the reading stream.

A line source is a component that hands out one raw line at a time:
- StreamLineReader: standard input or any text stream.
- SerialLineReader: a serial port read through pyserial.

The pipeline only knows the ``LineReader`` contract, so the transport can
change without touching aggregation or storage.
"""

from __future__ import annotations

import sys
from typing import Literal, Protocol, TextIO

import serial  # pyserial

from ..config.settings import ConfigError
from ..observability.loguru_config import get_logger

__all__ = [
    "LineReader",
    "SerialLineReader",
    "SourceKind",
    "StreamLineReader",
    "open_line_reader",
]

adapter_logger = get_logger("adapters")

SourceKind = Literal["stdin", "serial"]


class LineReader(Protocol):
    """Contract every reading source fulfils."""

    def read_line(self) -> str | None:
        """Return the next line without its line terminator.

        ``None`` signals end-of-stream or a read failure.
        """
        ...

    def close(self) -> None:
        ...


class StreamLineReader:
    """Read lines from a text stream (standard input by default).

    Undecodable bytes are replaced rather than raised, so device noise
    only spoils the line it appears in.
    """

    def __init__(self, stream: TextIO | None = None) -> None:
        self.stream = stream if stream is not None else sys.stdin

        reconfigure = getattr(self.stream, "reconfigure", None)
        if reconfigure is not None:
            reconfigure(errors="replace")

    def read_line(self) -> str | None:
        try:
            line = self.stream.readline()
        except (OSError, ValueError) as exc:
            adapter_logger.error(f"Failed to read from input stream: {exc}")
            return None

        if line == "":
            return None
        return line.rstrip("\r\n")

    def close(self) -> None:
        # Standard input belongs to the process, not to this reader
        if self.stream is not sys.stdin:
            self.stream.close()


class SerialLineReader:
    """Read newline-terminated lines from a serial port (8N1).

    Reads block until a full line arrives. A trailing carriage return is
    stripped.
    """

    def __init__(self, port: str, baudrate: int = 9600, *, timeout_s: float | None = None) -> None:
        self.port = port
        self.baudrate = baudrate
        self.timeout_s = timeout_s

        # Serial object (pyserial), opened in open()
        self._ser: serial.Serial | None = None

    def open(self) -> None:
        """Open the serial port.

        Raises
        ------
        ConfigError
            If the port cannot be opened
        """
        try:
            self._ser = serial.Serial(
                self.port,
                self.baudrate,
                bytesize=serial.EIGHTBITS,
                parity=serial.PARITY_NONE,
                stopbits=serial.STOPBITS_ONE,
                timeout=self.timeout_s,
            )
        except (serial.SerialException, ValueError) as exc:
            raise ConfigError(f"Can't open serial port {self.port}: {exc}") from exc

        self._ser.reset_input_buffer()
        adapter_logger.info(f"Opened serial port {self.port} at {self.baudrate} baud")

    def read_line(self) -> str | None:
        if self._ser is None:
            return None

        buffer = b""
        while True:
            try:
                raw = self._ser.readline()
            except serial.SerialException as exc:
                adapter_logger.error(f"Serial read failed on {self.port}: {exc}")
                return None

            if not raw:
                if self.timeout_s is None:
                    return None
                # Idle timeout, keep waiting for the rest of the line
                continue

            buffer += raw
            if buffer.endswith(b"\n") or self.timeout_s is None:
                return buffer.decode("utf-8", errors="ignore").rstrip("\r\n")

    def close(self) -> None:
        if self._ser is not None and self._ser.is_open:
            self._ser.close()
        self._ser = None


def open_line_reader(
    source: SourceKind,
    *,
    port: str | None = None,
    baudrate: int = 9600,
    stream: TextIO | None = None,
) -> LineReader:
    """Create and open the reader for a configured source.

    Parameters
    ----------
    source
        "stdin" or "serial"
    port
        Serial device (required for "serial"), e.g. /dev/ttyUSB0 or COM3
    baudrate
        Serial speed
    stream
        Override stream for "stdin" (used by tests)

    Raises
    ------
    ConfigError
        If the source is unknown, the port is missing or cannot be opened
    """
    if source == "stdin":
        return StreamLineReader(stream)

    if source == "serial":
        if not port:
            raise ConfigError("--port is required for serial source")
        reader = SerialLineReader(port, baudrate)
        reader.open()
        return reader

    raise ConfigError(f"Unknown source: {source}")
