"""Configuration settings for caches, realtime subscriptions and refresh loops."""

from pydantic import BaseModel
from pydantic import Field
from pydantic import model_validator


class CacheConfig(BaseModel):
    """Tagged cache configuration settings."""

    key_prefix: str = Field(
        default="sf_cache_",
        min_length=1,
        description="Prefix for cache entry keys in the storage backend",
    )
    tag_prefix: str = Field(
        default="sf_tag_",
        min_length=1,
        description="Prefix for tag index keys in the storage backend",
    )
    default_ttl_ms: int = Field(
        default=5 * 60 * 1000,
        gt=0,
        description="Time-to-live in milliseconds for entries set without one (default: 5 minutes)",
    )
    tag_index_sweep_threshold: int | None = Field(
        default=256,
        gt=0,
        description="Prune references to missing keys once a tag index grows past this size (None = never)",
    )

    @model_validator(mode="after")
    def check_prefixes_disjoint(self) -> "CacheConfig":
        if self.key_prefix.startswith(self.tag_prefix) or self.tag_prefix.startswith(
            self.key_prefix
        ):
            msg = (
                f"key_prefix <{self.key_prefix}> and tag_prefix <{self.tag_prefix}> "
                "must not be prefixes of each other"
            )
            raise ValueError(msg)
        return self


class RealtimeConfig(BaseModel):
    """Realtime order subscription settings."""

    schema_name: str = Field(
        default="orders",
        description="Database schema the change events come from",
    )
    table: str = Field(
        default="orders",
        description="Database table the change events come from",
    )
    connection_check_delay: float = Field(
        default=1.0,
        ge=0.0,
        description="Seconds after subscribing before the channel state is sampled",
    )
    events_per_second: int = Field(
        default=5,
        gt=0,
        description="Event rate limit requested from providers that support it",
    )


class RefreshConfig(BaseModel):
    """Periodic refresh settings."""

    interval: float = Field(
        default=60.0,
        gt=0.0,
        description="Seconds between freshness re-pulls (default: 1 minute)",
    )
