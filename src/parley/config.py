"""Runtime settings, read from the environment or a `.env` file."""

from pathlib import Path

from pydantic_settings import (
    BaseSettings,
    SettingsConfigDict,
)


class Settings(BaseSettings):
    """parley settings; each field can be overridden by an environment variable."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")

    # Server
    API_PORT: int = 8000
    DEBUG: bool = False
    LOG_LEVEL: str = "info"  # Options: debug, info, warning, error, critical

    # Models
    DEFAULT_PROVIDER: str = "anthropic"  # Options: anthropic, openai, ollama
    DEFAULT_MODEL: str = "claude-3-7-sonnet-20250219"
    ANTHROPIC_API_KEY: str | None = None
    OPENAI_API_KEY: str | None = None
    OLLAMA_URL: str = "http://localhost:11434"
    MODEL_TEMPERATURE: float = 0.0
    MODEL_MAX_TOKENS: int = 1024
    MODEL_TIMEOUT: float = 120.0

    # Agents
    AGENTS_FILE: str = "agents.yaml"
    PRIMARY_AGENT: str | None = None
    CONTEXT_DIR: str = "~/.parley/context"
    MAX_AGENT_TURNS: int = 25
    MAX_PROMPT_RETRIES: int = 3

    @property
    def context_dir(self) -> Path:
        """Resolved context directory (``~`` expanded)."""
        return Path(self.CONTEXT_DIR).expanduser()


settings = Settings()
