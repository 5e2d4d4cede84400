from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment."""

    model_config = SettingsConfigDict(env_file=".env")

    app_name: str = "SynergyForge"
    debug: bool = False

    database_url: str = "postgresql+asyncpg://localhost:5432/synergyforge"

    # Cards scored per batch run
    default_batch_size: int = 50

    # Each call site owns its threshold. These are only the defaults
    # used when a caller does not pass one explicitly.
    batch_synergy_threshold: float = 0.55
    neighbor_query_threshold: float = 0.0
    assembly_min_average_score: float = 0.30

    # A "processing" run that has not advanced for this long is treated
    # as abandoned (terminated process) and marked failed on the next claim
    stale_run_seconds: int = 3600


settings = Settings()


# =============================================================================
# REQUEST SAFETY LIMITS
# =============================================================================

# Largest chunk a single batch run may take
MAX_BATCH_SIZE = 1000

# Largest neighbor list returned by a single query
MAX_NEIGHBOR_LIMIT = 200

# Largest deck the assembler will try to build
MAX_TARGET_SIZE = 250

# Log batch progress every N cards
PROGRESS_LOG_EVERY = 5
