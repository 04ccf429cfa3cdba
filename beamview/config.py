"""
Server configuration.
"""

from dataclasses import dataclass, field
from pathlib import Path


# Configuration
DEFAULT_PORT = 8765
DEFAULT_HOST = "0.0.0.0"
DIST_PATH = Path(__file__).parent / "dist"


@dataclass(frozen=True)
class ServerConfig:
    """Fixed settings shared by the asset server and the launcher."""

    port: int = DEFAULT_PORT
    host: str = DEFAULT_HOST
    asset_root: Path = field(default=DIST_PATH)

    @property
    def bind_url(self) -> str:
        return f"http://{self.host}:{self.port}"
