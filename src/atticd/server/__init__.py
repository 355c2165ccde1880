"""atticd HTTP server.

Configuration resolution lives in ``config``; the FastAPI shell that
consumes the resolved configuration lives in ``app``.
"""

from .app import create_app, run_server
from .config import Config, load_config, parse_config

__all__ = ["create_app", "run_server", "Config", "load_config", "parse_config"]
