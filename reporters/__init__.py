"""Run trace reporters."""
from reporters.json_reporter import JSONReporter

__all__ = [
    "JSONReporter",
]
