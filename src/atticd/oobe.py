"""First-run setup ("out-of-box experience").

When the server starts without any configuration, this writes a working
single-machine ``server.toml``: SQLite database and local storage under
the per-user data directory, plus a freshly generated HS256 secret.
"""

import base64
import logging
import secrets
from pathlib import Path
from typing import Optional

from .server.config import get_xdg_data_path

logger = logging.getLogger(__name__)

# 64 random bytes, matching the recommended `openssl rand 64 | base64 -w0`
SECRET_BYTES = 64

CONFIG_TEMPLATE = """\
# atticd configuration, generated on first run.
# Docs: https://docs.attic.rs/admin-guide/deployment/

# Socket address to listen on
listen = "[::]:8080"

# Allowed `Host` headers
#
# This _must_ be configured for production use. If unconfigured or the
# list is empty, all `Host` headers are allowed.
allowed-hosts = []

# The canonical API endpoint of this server
#
# This _must_ be configured for production use and must end with a slash.
#api-endpoint = "https://your.domain.tld/"

# HS256 secret used to sign and verify tokens.
# Keep it private; anyone holding it can mint tokens.
token-hs256-secret-base64 = "{secret}"

[database]
url = "sqlite://{db_path}?mode=rwc"

[storage]
type = "local"
path = "{storage_path}"

[compression]
# Compression type: "none", "brotli", "zstd", or "xz"
type = "zstd"
# Unset uses a per-type default
#level = 8

[garbage-collection]
# Zero disables automatic garbage collection
interval = "12 hours"
# Zero disables time-based collection unless set per cache
#default-retention-period = "6 months"
"""


def _toml_path(path: Path) -> str:
    # Basic TOML strings treat backslashes as escapes
    return path.as_posix()


def render_config(data_dir: Path, secret: Optional[str] = None) -> str:
    """Render the first-run config for ``data_dir``.

    Args:
        data_dir: Directory holding the SQLite database and local storage.
        secret: Base64 HS256 secret. Generated when not given.
    """
    if secret is None:
        secret = base64.b64encode(secrets.token_bytes(SECRET_BYTES)).decode("ascii")

    return CONFIG_TEMPLATE.format(
        secret=secret,
        db_path=_toml_path(data_dir / "server.db"),
        storage_path=_toml_path(data_dir / "storage"),
    )


def write_initial_config(
    config_path: Path,
    data_dir: Optional[Path] = None,
    force: bool = False,
) -> bool:
    """Write the first-run config to ``config_path``.

    Returns:
        True if a config was written, False if one already existed and
        ``force`` was not set.
    """
    if config_path.exists() and not force:
        return False

    if data_dir is None:
        data_dir = get_xdg_data_path()
    (data_dir / "storage").mkdir(parents=True, exist_ok=True)

    config_path.parent.mkdir(parents=True, exist_ok=True)
    config_path.write_text(render_config(data_dir), encoding="utf-8")
    # The file holds the HS256 secret
    config_path.chmod(0o600)

    logger.info("Wrote initial configuration to %s", config_path)
    return True


async def run_oobe(config_path: Path) -> None:
    """Create ``config_path`` on first run; do nothing if it exists."""
    if config_path.exists():
        return

    write_initial_config(config_path)

    print()
    print("👋 Welcome to atticd!")
    print()
    print(f"✅ Config written: {config_path}")
    print("   It uses SQLite and local storage, and is fine for trying things out.")
    print("   Edit it before exposing the server: set allowed-hosts and api-endpoint.")
    print()
