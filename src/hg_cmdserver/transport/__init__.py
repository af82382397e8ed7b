"""Process transport for the command server."""

from .pipe_connection import PipeConnection, connect
