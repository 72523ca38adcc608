"""Reporting utilities for parkinet."""

from .artifacts import write_manifest
from .metrics import CsvSink, JsonlSink, RunContext
from .plots import PlotAdapter
from .summary import summarize_alternating, summarize_training, write_summary

__all__ = [
    "write_manifest",
    "CsvSink",
    "JsonlSink",
    "PlotAdapter",
    "RunContext",
    "summarize_alternating",
    "summarize_training",
    "write_summary",
]
