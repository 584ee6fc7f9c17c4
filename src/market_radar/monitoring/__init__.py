"""Monitoring module for upstream request logging."""

from .request_log import RequestLog, LogEntry

__all__ = ["RequestLog", "LogEntry"]
