"""
Layout configuration.

All layouts share one fixed node footprint; it approximates the rendered
card size and is never measured. Values can be overridden through
environment variables (see ``LayoutConfig.from_env``).
"""

import os
from typing import Optional

from pydantic import BaseModel


# Default layout parameters
DEFAULT_NODE_WIDTH = 220
DEFAULT_NODE_HEIGHT = 80
DEFAULT_RANK_SEP = 50
DEFAULT_NODE_SEP = 50
DEFAULT_RADIUS_INCREMENT = 350
DEFAULT_FALLBACK_COLOR = "#ffffff"

ENV_PREFIX = "MINDMAP_"


class LayoutConfig(BaseModel):
    """Footprint and spacing shared by every layout policy."""
    node_width: float = DEFAULT_NODE_WIDTH
    node_height: float = DEFAULT_NODE_HEIGHT
    rank_sep: float = DEFAULT_RANK_SEP      # Gap between ranks (principal axis)
    node_sep: float = DEFAULT_NODE_SEP      # Gap between nodes in one rank
    radius_increment: float = DEFAULT_RADIUS_INCREMENT
    fallback_color: str = DEFAULT_FALLBACK_COLOR

    @property
    def half_width(self) -> float:
        return self.node_width / 2

    @property
    def half_height(self) -> float:
        return self.node_height / 2

    @classmethod
    def from_env(cls, environ: Optional[dict] = None) -> "LayoutConfig":
        """
        Build a config from MINDMAP_* environment variables.

        Recognized: MINDMAP_NODE_WIDTH, MINDMAP_NODE_HEIGHT, MINDMAP_RANK_SEP,
        MINDMAP_NODE_SEP, MINDMAP_RADIUS_INCREMENT, MINDMAP_FALLBACK_COLOR.
        Unset variables keep their defaults.
        """
        env = os.environ if environ is None else environ
        overrides = {}
        for name in cls.model_fields:
            value = env.get(f"{ENV_PREFIX}{name.upper()}")
            if value is not None:
                overrides[name] = value
        return cls(**overrides)


def server_address(environ: Optional[dict] = None) -> tuple[str, int]:
    """Host and port for the HTTP service (MINDMAP_HOST / MINDMAP_PORT)."""
    env = os.environ if environ is None else environ
    host = env.get(f"{ENV_PREFIX}HOST", "127.0.0.1")
    port = int(env.get(f"{ENV_PREFIX}PORT", "8765"))
    return host, port
