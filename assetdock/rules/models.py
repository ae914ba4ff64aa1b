from typing import Literal

from pydantic import BaseModel, Field


class StorageRules(BaseModel):
    root: str = "storage"
    public_dir: str = "public"
    private_dir: str = "private"
    pending_dir: str = "assets_pending"


class PendingTokenRules(BaseModel):
    provider: Literal["session", "cookie", "request", "none"] = "session"
    ttl_seconds: int = Field(default=604800, gt=0)  # one week
    length_bytes: int = Field(default=16, ge=1, le=64)
    cookie_name: str = "__asset_pending_security_token_"
    header_name: str = "X-Pending-Token"
    request_key: str = "pending_token"


class PendingRules(BaseModel):
    default_ttl_seconds: int = Field(default=86400, gt=0)
    id_generation_attempts: int = Field(default=5, ge=1)
    token: PendingTokenRules = Field(default_factory=PendingTokenRules)


class VariantRules(BaseModel):
    run_on_queue: bool = True
    queue_name: str = "asset_queue"
    handler_name: str = "asset_variants"
    max_attempts: int = Field(default=2, ge=1)  # first run plus one retry
    retry_after_seconds: int = Field(default=60, ge=0)
    gc_batch_size: int = Field(default=1000, ge=1)
    persist_partial_variants: bool = False


class TempUrlRules(BaseModel):
    secret_key: str = "dev-secret-unsafe"
    algorithm: str = "HS256"
    default_ttl_seconds: int = Field(default=3600, gt=0)


class CollectionRules(BaseModel):
    """Collection policy declared in the rules file."""

    visibility: Literal["public", "private"] = "public"
    allowed_extensions: list[str] = Field(default_factory=list)
    allowed_mime_types: list[str] = Field(default_factory=list)
    max_file_size: int = Field(default=0, ge=0)
    keep_latest: int | None = Field(default=None, ge=1)
    single_file: bool = False


class AssetRules(BaseModel):
    storage: StorageRules = Field(default_factory=StorageRules)
    pending: PendingRules = Field(default_factory=PendingRules)
    variants: VariantRules = Field(default_factory=VariantRules)
    temp_urls: TempUrlRules = Field(default_factory=TempUrlRules)
    collections: dict[str, CollectionRules] = Field(default_factory=dict)
