"""Reading sources and raw text decoding."""

from .line_readers import LineReader, SerialLineReader, StreamLineReader, open_line_reader
from .readings import ReadingParseError, parse_reading

__all__ = [
    "LineReader",
    "ReadingParseError",
    "SerialLineReader",
    "StreamLineReader",
    "open_line_reader",
    "parse_reading",
]
