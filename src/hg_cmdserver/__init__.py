"""Client for the Mercurial command server (``hg serve --cmdserver pipe``)."""

from .config import ConnectionConfig
from .errors import CommandServerError
from .models import CommandResult
from .protocol import Capability, Channel, Chunk, UnknownCapability
from .transport import PipeConnection, connect

__version__ = "0.1.0"
