"""templog: streaming sensor logger with hourly/daily averages and bounded retention."""

__version__ = "0.1.0"
