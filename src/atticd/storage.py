"""Storage backend configuration shapes.

Only the configuration of each backend lives here; the backends
themselves are separate.
"""

from pathlib import Path
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, StrictStr


class LocalStorageConfig(BaseModel):
    """Local file storage."""
    model_config = ConfigDict(extra="forbid", frozen=True)

    type: Literal["local"] = "local"

    # The directory to store all files under.
    path: Path


class S3CredentialsConfig(BaseModel):
    """Static S3 credentials."""
    model_config = ConfigDict(extra="forbid", frozen=True)

    access_key_id: StrictStr = Field(alias="access-key-id")
    secret_access_key: StrictStr = Field(alias="secret-access-key", repr=False)


class S3StorageConfig(BaseModel):
    """S3-compatible object storage.

    Attributes:
        region: AWS region, e.g. ``us-east-1``.
        bucket: Bucket name.
        endpoint: Custom endpoint for S3-compatible services (MinIO,
            Cloudflare R2, ...). Uses AWS when unset.
        credentials: Static credentials. When unset, the SDK's default
            credential chain is used.
    """
    model_config = ConfigDict(extra="forbid", frozen=True)

    type: Literal["s3"] = "s3"
    region: StrictStr
    bucket: StrictStr
    endpoint: Optional[StrictStr] = None
    credentials: Optional[S3CredentialsConfig] = None
