"""Server configuration."""

import base64
import binascii
import logging
import os
import tomllib
from dataclasses import dataclass
from datetime import timedelta
from enum import Enum
from pathlib import Path
from typing import Annotated, Any, Awaitable, Callable, Optional, Union

import platformdirs
import tomli_w
from pydantic import (
    BaseModel,
    BeforeValidator,
    ConfigDict,
    Field,
    PlainSerializer,
    StrictBool,
    StrictInt,
    StrictStr,
    ValidationError,
    ValidationInfo,
    field_serializer,
    field_validator,
    model_validator,
)

from ..access import (
    EnvLookup,
    HS256Key,
    decode_token_hs256_secret_base64,
    encode_token_hs256_secret_base64,
    resolve_secret,
)
from ..errors import SchemaViolation, SourceUnavailable
from ..storage import LocalStorageConfig, S3StorageConfig
from ..utils import format_duration, parse_duration, parse_socket_address

logger = logging.getLogger(__name__)

# Application prefix in the per-user base directories,
# e.g. ``$XDG_CONFIG_HOME/attic``.
XDG_PREFIX = "attic"

CONFIG_FILE_NAME = "server.toml"

# Environment variable storing the Base64-encoded TOML configuration.
# Useful on application platforms where mounting a file is awkward.
ENV_CONFIG_BASE64 = "ATTIC_SERVER_CONFIG_BASE64"

DEFAULT_LISTEN = "[::]:8080"
DEFAULT_GC_INTERVAL = timedelta(hours=12)
DEFAULT_RETENTION_PERIOD = timedelta(0)

SECRET_KEY = "token-hs256-secret-base64"

OobeHook = Callable[[Path], Awaitable[None]]


def _parse_duration_value(value: Any) -> Any:
    if isinstance(value, timedelta):
        return value
    if not isinstance(value, str):
        raise ValueError("expected a duration string such as '12h' or '30 days'")
    return parse_duration(value)


Duration = Annotated[
    timedelta,
    BeforeValidator(_parse_duration_value),
    PlainSerializer(format_duration, return_type=str),
]


class DatabaseConfig(BaseModel):
    """Database connection configuration."""
    model_config = ConfigDict(extra="forbid", frozen=True)

    url: StrictStr
    # Send a heartbeat query every minute.
    heartbeat: StrictBool = False


StorageConfig = Annotated[
    Union[LocalStorageConfig, S3StorageConfig],
    Field(discriminator="type"),
]


class CompressionType(str, Enum):
    """Compression algorithm for stored NARs."""
    NONE = "none"
    BROTLI = "brotli"
    ZSTD = "zstd"
    XZ = "xz"


@dataclass(frozen=True)
class CompressionLevel:
    """Effective compression level.

    ``precise`` is None when the codec should use its own default.
    """
    precise: Optional[int] = None

    @property
    def is_default(self) -> bool:
        return self.precise is None


# Levels used when the config leaves ``level`` unset. Each algorithm has a
# very different cost/ratio curve, so one global default would fit badly.
DEFAULT_COMPRESSION_LEVELS: dict[CompressionType, int] = {
    CompressionType.BROTLI: 5,
    CompressionType.ZSTD: 8,
    CompressionType.XZ: 2,
}


class CompressionConfig(BaseModel):
    """Compression configuration."""
    model_config = ConfigDict(extra="forbid", frozen=True)

    type: CompressionType
    level: Optional[StrictInt] = Field(default=None, ge=0, le=2**32 - 1)

    def effective_level(self) -> CompressionLevel:
        """Resolve the level to compress at.

        An explicit ``level`` always wins, whatever the type. Otherwise the
        per-type default applies, and ``none`` falls through to the codec.
        """
        if self.level is not None:
            return CompressionLevel(self.level)
        return CompressionLevel(DEFAULT_COMPRESSION_LEVELS.get(self.type))


def effective_level(config: CompressionConfig) -> CompressionLevel:
    """Resolve the effective compression level of ``config``."""
    return config.effective_level()


class GarbageCollectionConfig(BaseModel):
    """Garbage collection config.

    Attributes:
        interval: How often to run garbage collection. Zero disables
            automatic collection; it can still be run manually.
        default_retention_period: Objects are collectable once both their
            creation and last-access times are older than this. Zero (the
            default) disables time-based collection unless a cache sets
            its own retention period.
    """
    model_config = ConfigDict(extra="forbid", frozen=True)

    interval: Duration = DEFAULT_GC_INTERVAL
    default_retention_period: Duration = Field(
        default=DEFAULT_RETENTION_PERIOD,
        alias="default-retention-period",
    )


class Config(BaseModel):
    """Configuration for the Attic server.

    Instances are immutable and are shared read-only for the lifetime of
    the process. The HS256 secret is left out of ``repr``.
    """
    model_config = ConfigDict(extra="forbid", frozen=True, arbitrary_types_allowed=True)

    # Socket address to listen on.
    listen: StrictStr = DEFAULT_LISTEN

    # Allowed `Host` headers. Must be set for production use; when empty,
    # all `Host` headers are allowed.
    allowed_hosts: tuple[StrictStr, ...] = Field(default=(), alias="allowed-hosts")

    # Canonical API endpoint exposed to clients. Must end with a slash.
    # When unset, it is synthesized from the client's `Host` header.
    api_endpoint: Optional[StrictStr] = Field(default=None, alias="api-endpoint")

    # Canonical binary cache endpoint. Consumers fall back to
    # `api_endpoint` when unset.
    substituter_endpoint: Optional[StrictStr] = Field(default=None, alias="substituter-endpoint")

    # Soft-deleted caches keep their database records, so their names
    # cannot be reused.
    soft_delete_caches: StrictBool = Field(default=False, alias="soft-delete-caches")

    # If false, knowing a NAR hash is enough to gain access to an existing
    # NAR in the global cache.
    require_proof_of_possession: StrictBool = Field(default=True, alias="require-proof-of-possession")

    database: DatabaseConfig
    storage: StorageConfig
    # A missing section means zstd; a present one must name its type.
    compression: CompressionConfig = Field(
        default_factory=lambda: CompressionConfig(type=CompressionType.ZSTD),
    )
    garbage_collection: GarbageCollectionConfig = Field(
        default_factory=GarbageCollectionConfig,
        alias="garbage-collection",
    )

    token_hs256_secret: HS256Key = Field(alias=SECRET_KEY, repr=False)

    @model_validator(mode="before")
    @classmethod
    def _load_secret_from_env(cls, data: Any, info: ValidationInfo) -> Any:
        if isinstance(data, dict) and SECRET_KEY not in data:
            env = (info.context or {}).get("env", os.environ.get)
            data = {**data, SECRET_KEY: resolve_secret(None, env=env)}
        return data

    @field_validator("listen")
    @classmethod
    def _check_listen(cls, v: str) -> str:
        parse_socket_address(v)
        return v

    @field_validator("api_endpoint")
    @classmethod
    def _check_api_endpoint(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and not v.endswith("/"):
            raise ValueError(f"must end with a slash (e.g. {v}/)")
        return v

    @field_validator("token_hs256_secret", mode="before")
    @classmethod
    def _decode_secret(cls, v: Any) -> Any:
        if isinstance(v, HS256Key):
            return v
        if not isinstance(v, str):
            raise ValueError("expected a Base64-encoded string")
        return decode_token_hs256_secret_base64(v)

    @field_serializer("token_hs256_secret")
    def _encode_secret(self, key: HS256Key) -> str:
        return encode_token_hs256_secret_base64(key)

    def listen_address(self) -> tuple[str, int]:
        """Return the ``(host, port)`` pair to bind to."""
        return parse_socket_address(self.listen)


def _format_location(loc: tuple) -> str:
    return ".".join(str(part) for part in loc)


def parse_config(text: str, env: EnvLookup = os.environ.get) -> Config:
    """Parse TOML configuration text into a ``Config``.

    Args:
        text: The raw ``server.toml`` contents.
        env: Environment lookup used when the secret is not inline.

    Raises:
        SchemaViolation: On TOML syntax errors, unknown fields, wrong value
            types or unknown storage types.
        InvalidSecretEncoding: If the secret is not valid Base64.
        MissingSecret: If no secret is configured anywhere.
    """
    try:
        data = tomllib.loads(text)
    except tomllib.TOMLDecodeError as exc:
        raise SchemaViolation([("", f"TOML syntax error: {exc}")]) from exc

    try:
        return Config.model_validate(data, context={"env": env})
    except ValidationError as exc:
        raise SchemaViolation(
            [(_format_location(err["loc"]), err["msg"]) for err in exc.errors()]
        ) from exc


def dump_config(config: Config, include_secret: bool = False) -> str:
    """Serialize ``config`` back into ``server.toml`` text.

    The HS256 secret is omitted unless ``include_secret`` is set; without
    it the output must be paired with the secret environment variable to
    load again.
    """
    exclude = None if include_secret else {"token_hs256_secret"}
    data = config.model_dump(mode="json", by_alias=True, exclude_none=True, exclude=exclude)
    return tomli_w.dumps(data)


def _read_config_file(path: Path) -> str:
    logger.info("Using configurations: %s", path)
    try:
        return path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise SourceUnavailable(f"Failed to read configuration file {path}: {exc}") from exc


async def resolve_config_source(
    config_path: Optional[Union[str, Path]] = None,
    allow_oobe: bool = False,
    env: EnvLookup = os.environ.get,
    oobe: Optional[OobeHook] = None,
) -> str:
    """Select the configuration text to load, in the standard order.

    1. ``config_path``, if given.
    2. The Base64 blob in ``ATTIC_SERVER_CONFIG_BASE64``, if set.
    3. ``server.toml`` in the per-user config directory. With
       ``allow_oobe``, the first-run setup runs first so it can create
       the file.

    Exactly one source is used; there is no merging between them.

    Raises:
        SourceUnavailable: If the selected source cannot be read or decoded.
    """
    if config_path is not None:
        return _read_config_file(Path(config_path))

    config_env = env(ENV_CONFIG_BASE64)
    if config_env is not None:
        logger.info("Using configurations from environment variable")
        try:
            raw = base64.b64decode("".join(config_env.split()), validate=True)
            return raw.decode("utf-8")
        except (binascii.Error, ValueError) as exc:
            raise SourceUnavailable(f"Failed to decode {ENV_CONFIG_BASE64}: {exc}") from exc

    config_path = get_xdg_config_path()

    if allow_oobe:
        if oobe is None:
            from ..oobe import run_oobe as oobe
        await oobe(config_path)

    return _read_config_file(config_path)


async def load_config(
    config_path: Optional[Union[str, Path]] = None,
    allow_oobe: bool = False,
    env: EnvLookup = os.environ.get,
    oobe: Optional[OobeHook] = None,
) -> Config:
    """Load the configuration in the standard order.

    See ``resolve_config_source`` for how the source is chosen.
    """
    text = await resolve_config_source(config_path, allow_oobe, env=env, oobe=oobe)
    return parse_config(text, env=env)


def get_xdg_config_path() -> Path:
    """Return the per-user ``server.toml`` path, creating its directory."""
    config_dir = platformdirs.user_config_path(XDG_PREFIX)
    try:
        config_dir.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise SourceUnavailable(f"Failed to create config directory {config_dir}: {exc}") from exc
    return config_dir / CONFIG_FILE_NAME


def get_xdg_data_path() -> Path:
    """Return the per-user data directory, creating it if needed."""
    data_dir = platformdirs.user_data_path(XDG_PREFIX)
    data_dir.mkdir(parents=True, exist_ok=True)
    return data_dir
