"""Configuration for the ohm runtime."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Any


@dataclass
class OhmConfig:
    """Configuration for connections and script loading."""

    redis_url: str = "redis://localhost:6379/0"
    decode_responses: bool = True
    scripts_dir: str = field(default_factory=lambda: os.path.join(os.getcwd(), "lua"))
    default_context: str = "main"

    @classmethod
    def from_env(cls) -> OhmConfig:
        """Build a config from OHM_* environment variables (REDIS_URL as fallback)."""
        url = os.getenv("OHM_REDIS_URL") or os.getenv("REDIS_URL")
        scripts_dir = os.getenv("OHM_SCRIPTS_DIR")
        config = cls()
        if url:
            config.redis_url = url
        if scripts_dir:
            config.scripts_dir = scripts_dir
        return config

    def connection_options(self) -> dict[str, Any]:
        return {"url": self.redis_url, "decode_responses": self.decode_responses}
