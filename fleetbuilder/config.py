from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment."""

    model_config = SettingsConfigDict(env_file=".env")

    app_name: str = "Fleetbuilder"
    debug: bool = False

    database_url: str = "sqlite+aiosqlite:///./fleetbuilder.db"

    supabase_url: str = ""
    supabase_anon_key: str = ""

    # Local JSON export {"units": [...], "unit_stats": [...]} used instead of the hosted catalog
    catalog_path: str = ""

    # Magic links must carry an explicit redirect or they fall back to localhost
    magic_link_redirect_url: str = "http://localhost:5173/"

    # Where finished decks are stored: local database or the hosted REST tables
    deck_backend: Literal["database", "supabase"] = "database"

    cooldown_state_path: str = ".fleetbuilder/cooldown.json"

    http_timeout_seconds: float = 30.0


settings = Settings()


# =============================================================================
# DECK RULES
# =============================================================================

POINT_CAPS: tuple[int, ...] = (50, 80, 110, 150, 200, 250)
DEFAULT_POINT_CAP = 150
DEFAULT_FACTION_RULE = "axis_only"
DEFAULT_DECK_NAME = "My Axis 150"

# Copy cap used when no ownership record applies ("effectively unlimited")
DEFAULT_COPY_LIMIT = 99

# Range bands carrying an effective-damage stat
EFFECTIVE_RANGES: tuple[int, ...] = (0, 1, 2, 3)

# Recommender stops filling a candidate once less than this many points remain
RECOMMEND_RESERVE_MARGIN = 3


# =============================================================================
# SIGN-IN COOLDOWN
# =============================================================================

# Wait applied when a rate-limit message carries no parseable duration
FALLBACK_WAIT_SECONDS = 60

COUNTDOWN_INTERVAL_SECONDS = 1.0
