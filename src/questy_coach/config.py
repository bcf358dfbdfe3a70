"""Configuration management for questy_coach.

This module provides typed configuration classes using pydantic-settings.
Configuration is loaded from environment variables with optional .env file support.
"""

from pydantic import SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict

__all__ = [
    "BurnoutSettings",
    "DelaySettings",
    "LLMSettings",
    "LoggingSettings",
    "MemorySettings",
    "MongoSettings",
    "QuestSettings",
    "QuestyCoachConfig",
    "RedisSettings",
    "RetrievalSettings",
    "RouterSettings",
    "SpacedRepetitionSettings",
]


class MongoSettings(BaseSettings):
    """MongoDB settings for the persistent vector memory backend."""

    model_config = SettingsConfigDict(
        env_prefix="QUESTY_MONGO_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    uri: SecretStr = SecretStr("mongodb://localhost:27017")
    database: str = "questy_coach"
    collection_prefix: str = ""
    memories_collection: str = "questy_learning_memories"
    vector_search_enabled: bool = True
    vector_search_index_name: str = "memory_embedding_index"
    vector_search_num_candidates: int = 200


class RedisSettings(BaseSettings):
    """Redis connection settings (optional).

    Redis backs the per-student state store and the embedding cache.
    If url is not configured or connection fails, the in-process
    store is used instead.
    """

    model_config = SettingsConfigDict(
        env_prefix="QUESTY_REDIS_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    url: str | None = None
    enabled: bool = True
    key_prefix: str = "questy:"
    state_ttl_seconds: int | None = None
    embedding_ttl_seconds: int = 86400


class LLMSettings(BaseSettings):
    """LLM and embedding provider settings."""

    model_config = SettingsConfigDict(
        env_prefix="QUESTY_LLM_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    provider: str = "openai"  # "openai" or "anthropic"
    api_key: SecretStr | None = None
    base_url: str | None = None
    model: str = "gpt-4o-mini"
    temperature: float = 0.7
    max_tokens: int = 1024
    timeout_seconds: float = 30.0
    max_retries: int = 2

    embedding_strategy: str = "openai"  # "openai" or "hash"
    embedding_model: str = "text-embedding-3-small"
    embedding_dimensions: int = 768
    embedding_batch_size: int = 2048


class RouterSettings(BaseSettings):
    """Intent router thresholds and model tiers."""

    model_config = SettingsConfigDict(
        env_prefix="QUESTY_ROUTER_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    simple_threshold: float = 0.3
    complex_threshold: float = 0.6
    fast_model: str = "gpt-4o-mini"
    balanced_model: str = "claude-3-5-haiku-latest"
    deep_model: str = "gpt-4o"


class RetrievalSettings(BaseSettings):
    """Re-ranking weights and retrieval limits."""

    model_config = SettingsConfigDict(
        env_prefix="QUESTY_RETRIEVAL_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    semantic_weight: float = 0.45
    recency_weight: float = 0.10
    confidence_weight: float = 0.10
    type_boost_weight: float = 0.15
    subject_match_weight: float = 0.10
    urgency_weight: float = 0.10

    max_results: int = 10
    min_score: float = 0.3
    recency_window_days: int = 30

    candidate_top_k: int = 50
    candidate_min_confidence: float = 0.6
    timeout_seconds: float = 5.0


class MemorySettings(BaseSettings):
    """MemoryLane feature flags and extraction limits."""

    model_config = SettingsConfigDict(
        env_prefix="QUESTY_MEMORY_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    enable_auto_extraction: bool = True
    enable_burnout_monitoring: bool = True
    enable_spaced_repetition: bool = True
    enable_vector_store: bool = True
    min_confidence: float = 0.6
    max_memories_per_student: int = 1000


class SpacedRepetitionSettings(BaseSettings):
    """SM-2 and mastery EMA parameters."""

    model_config = SettingsConfigDict(
        env_prefix="QUESTY_SRS_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    ema_alpha: float = 0.3
    min_easiness_factor: float = 1.3
    max_interval_days: int = 30
    initial_interval_days: int = 1


class BurnoutSettings(BaseSettings):
    """Burnout window and level thresholds."""

    model_config = SettingsConfigDict(
        env_prefix="QUESTY_BURNOUT_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    tracking_window_days: int = 7
    high_threshold: float = 0.7
    medium_threshold: float = 0.4


class QuestSettings(BaseSettings):
    """Daily quest budgets and tracker retention."""

    model_config = SettingsConfigDict(
        env_prefix="QUESTY_QUEST_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    max_quests: int = 5
    max_minutes: int = 120
    review_quest_priority: int = 2
    streak_bonus_multiplier: float = 1.5
    history_days: int = 30
    personalize_messages: bool = False
    generation_timeout_seconds: float = 10.0


class DelaySettings(BaseSettings):
    """Delay analysis windows."""

    model_config = SettingsConfigDict(
        env_prefix="QUESTY_DELAY_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    lookback_days: int = 7
    completion_history_days: int = 30


class LoggingSettings(BaseSettings):
    """structlog output settings."""

    model_config = SettingsConfigDict(
        env_prefix="QUESTY_LOG_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    level: str = "INFO"
    json_output: bool = False
    timestamps: bool = True


class QuestyCoachConfig(BaseSettings):
    """Main configuration aggregating all settings.

    Example usage:
        config = QuestyCoachConfig()
        weights = config.retrieval.semantic_weight
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    mongo: MongoSettings = MongoSettings()
    redis: RedisSettings = RedisSettings()
    llm: LLMSettings = LLMSettings()
    router: RouterSettings = RouterSettings()
    retrieval: RetrievalSettings = RetrievalSettings()
    memory: MemorySettings = MemorySettings()
    spaced_repetition: SpacedRepetitionSettings = SpacedRepetitionSettings()
    burnout: BurnoutSettings = BurnoutSettings()
    quest: QuestSettings = QuestSettings()
    delay: DelaySettings = DelaySettings()
    log: LoggingSettings = LoggingSettings()

    @property
    def redis_enabled(self) -> bool:
        """Check if the Redis state store is enabled and configured."""
        return self.redis.enabled and self.redis.url is not None

    @property
    def hash_embeddings(self) -> bool:
        """True when the deterministic hash embedding strategy is selected."""
        return self.llm.embedding_strategy == "hash" or self.llm.api_key is None
