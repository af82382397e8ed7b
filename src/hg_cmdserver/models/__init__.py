"""Data models for command results."""

from .result import CommandResult
