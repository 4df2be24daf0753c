"""Configuration settings for LoreSense."""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Engine settings loaded from environment variables (LORE_SENSE_*)."""

    model_config = SettingsConfigDict(
        env_prefix="LORE_SENSE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ── Disambiguation (score = weight(match_kind) + context_bonus) ──────────
    # Below this combined score a mention resolves to NotFound
    confidence_floor: float = 0.5

    weight_exact: float = 1.0  # Display-name hit
    weight_alias: float = 0.8  # Alias hit
    weight_fuzzy: float = 0.6  # Edit-distance fallback hit

    # Added when the surrounding context mentions the candidate's faction,
    # a relationship target, or one of its context keys
    context_bonus: float = 0.2

    # ── Fuzzy matching ────────────────────────────────────────────────────────
    # distance / max(len(token), len(candidate)) must not exceed this (~80% similarity)
    fuzzy_max_normalized_distance: float = 0.2

    # Absolute cap on Levenshtein distance
    fuzzy_max_edit_distance: int = 2

    # ── Identity ──────────────────────────────────────────────────────────────
    # Hex chars of SHA-256 kept in the fingerprint
    fingerprint_length: int = 16


settings = Settings()
