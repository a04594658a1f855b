# src/action_chain/config.py
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    action-chain configuration.
    Loads ACTION_CHAIN_* variables from the environment or a .env file.
    """

    # --- Observability ---
    LOG_LEVEL: str = "INFO"

    # --- Execution ---
    # Run the full chain-shape check before resolving an invocation tree.
    # Per-action input validation always runs regardless of this flag.
    VALIDATE_CHAIN: bool = True

    # --- Structured output (response_format wrapper) ---
    RESPONSE_FORMAT_NAME: str = "execution"
    STRICT_RESPONSE_FORMAT: bool = True

    model_config = SettingsConfigDict(
        env_prefix="ACTION_CHAIN_",
        env_file=".env",
        extra="ignore",
        env_file_encoding="utf-8",
    )


# Initialize a global settings instance
settings = Settings()
