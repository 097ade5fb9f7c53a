"""Configuration loader for the document rewrite application."""

import os
from pathlib import Path

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field


class AppInfo(BaseModel):
    """Application metadata."""

    name: str = "Document Rewriter"
    version: str = "1.0.0"


class ChunkingConfig(BaseModel):
    """Word-count chunking configuration.

    Rewrite chunking and read-only display chunking are independent bounds.
    """

    rewrite_max_words: int = Field(default=500, gt=0)
    display_max_words: int = Field(default=1000, gt=0)
    preview_chars: int = 100


class ProviderConfig(BaseModel):
    """Connection settings for one rewrite provider."""

    model: str
    base_url: str | None = None
    api_key_env: str | None = None  # defaults to <NAME>_API_KEY
    api_key: str | None = None  # usually filled from the environment


def _default_providers() -> dict[str, ProviderConfig]:
    return {
        "deepseek": ProviderConfig(model="deepseek-chat", base_url="https://api.deepseek.com"),
        "openai": ProviderConfig(model="gpt-4o"),
        "anthropic": ProviderConfig(model="claude-sonnet-4-20250514"),
        "perplexity": ProviderConfig(
            model="llama-3.1-sonar-small-128k-online",
            base_url="https://api.perplexity.ai",
        ),
    }


class RewriteConfig(BaseModel):
    """Rewrite service configuration."""

    default_provider: str = "deepseek"
    temperature: float = 0.7
    max_tokens: int = 4000
    timeout_seconds: float = 120.0
    providers: dict[str, ProviderConfig] = Field(default_factory=_default_providers)


class ExportConfig(BaseModel):
    """Consolidated export configuration."""

    paragraph_separator: str = "\n\n"


class AppConfig(BaseModel):
    """Root application configuration."""

    app: AppInfo = Field(default_factory=AppInfo)
    chunking: ChunkingConfig = Field(default_factory=ChunkingConfig)
    rewrite: RewriteConfig = Field(default_factory=RewriteConfig)
    export: ExportConfig = Field(default_factory=ExportConfig)

    def api_key_env_for(self, provider: str) -> str:
        """Return the environment variable holding a provider's API key."""
        settings = self.rewrite.providers.get(provider)
        if settings is not None and settings.api_key_env:
            return settings.api_key_env
        return f"{provider.upper()}_API_KEY"

    def api_key_for(self, provider: str) -> str | None:
        """Return the API key configured for a provider, if any."""
        settings = self.rewrite.providers.get(provider)
        return settings.api_key if settings is not None else None


def load_config(config_path: str | Path = "config.yaml") -> AppConfig:
    """Load configuration from YAML file and environment variables.

    Args:
        config_path: Path to the YAML configuration file.

    Returns:
        Fully populated AppConfig instance.
    """
    load_dotenv()

    yaml_data: dict = {}
    config_file = Path(config_path)
    if config_file.exists():
        with open(config_file) as f:
            yaml_data = yaml.safe_load(f) or {}

    config = AppConfig(**yaml_data)

    # Environment keys win over YAML; unset variables leave YAML keys alone
    for name, settings in config.rewrite.providers.items():
        env_key = os.getenv(config.api_key_env_for(name))
        if env_key:
            settings.api_key = env_key

    return config
