"""Fetch orchestration."""

from .orchestrator import FetchOrchestrator

__all__ = ["FetchOrchestrator"]
