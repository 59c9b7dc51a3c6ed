"""Shared helpers: progress events and cancellation."""
from .cancellation import CancellationSignal
from .events import EventEmitter, FileProgress, ProgressAggregator

__all__ = ["CancellationSignal", "EventEmitter", "FileProgress", "ProgressAggregator"]
