from .log_lines import LogLine, LogParseError, LogType, tokenize_line

__all__ = [
    "LogLine",
    "LogParseError",
    "LogType",
    "tokenize_line",
]
