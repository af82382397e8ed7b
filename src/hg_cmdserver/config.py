"""Connection configuration."""

from __future__ import annotations

import os
import shutil
from dataclasses import dataclass, field, replace
from pathlib import Path

HG_ARGS = ("serve", "--cmdserver", "pipe")

# Forces output that is stable across user configs and locales.
HG_ENV = {
    "HGPLAIN": "True",
    "HGENCODING": "UTF-8",
    "HGENCODINGMODE": "strict",
}


def default_hg() -> str:
    """Resolve ``hg`` on PATH, falling back to the bare name."""
    return shutil.which("hg") or "hg"


@dataclass(frozen=True)
class ConnectionConfig:
    """Configuration for :class:`~hg_cmdserver.transport.PipeConnection`."""

    hg: str | None = None
    """Path to the hg executable. If None, resolved from PATH."""

    cwd: str | None = None
    """Working directory for the server. If None, the current directory."""

    extra_env: dict[str, str] = field(default_factory=dict)
    """Additional environment variables. The HG_ENV overrides always win."""

    @classmethod
    def from_env(cls) -> ConnectionConfig:
        """Create config from environment variables.

        Environment variables:
        - HG_CMDSERVER_HG: hg executable path
        - HG_CMDSERVER_CWD: working directory
        """
        return cls(
            hg=os.environ.get("HG_CMDSERVER_HG") or None,
            cwd=os.environ.get("HG_CMDSERVER_CWD") or None,
        )

    def with_hg(self, path: str | Path) -> ConnectionConfig:
        return replace(self, hg=str(path))

    def with_cwd(self, path: str | Path) -> ConnectionConfig:
        return replace(self, cwd=str(path))

    def command_line(self) -> list[str]:
        return [self.hg or default_hg(), *HG_ARGS]

    def environment(self) -> dict[str, str]:
        env = dict(os.environ)
        env.update(self.extra_env)
        env.update(HG_ENV)
        return env
