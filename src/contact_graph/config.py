"""Configuration management for contact-graph using pydantic-settings.

Settings priority (highest to lowest):
1. CLI flags (applied after ContactGraphConfig creation)
2. Environment variables (CONTACTS_* prefix)
3. .env file
4. contacts.yaml project config
5. Default values
"""

import logging
import os
from pathlib import Path
from typing import Annotated

import yaml
from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, NoDecode, PydanticBaseSettingsSource, SettingsConfigDict

logger = logging.getLogger(__name__)

PROJECT_FILE = "contacts.yaml"

# Map contacts.yaml keys to ContactGraphConfig field names
_YAML_TO_FIELD = {
    "model": "default_model",
    "store": "store_path",
    "rpm": "rpm",
    "timeout": "timeout",
    "discovery_tag": "discovery_tag",
    "org_keywords": "org_keywords",
}


class _ProjectYamlSource(PydanticBaseSettingsSource):
    """Read project config from contacts.yaml (lower priority than env vars)."""

    def get_field_value(self, field, field_name):  # type: ignore[override]
        return None, field_name, False

    def __call__(self) -> dict:
        project_file = Path(PROJECT_FILE)
        if not project_file.exists():
            return {}

        raw = yaml.safe_load(project_file.read_text()) or {}
        return {
            field_name: raw[yaml_key]
            for yaml_key, field_name in _YAML_TO_FIELD.items()
            if yaml_key in raw
        }


class ContactGraphConfig(BaseSettings):
    """Settings for contact-graph loaded from the environment.

    All environment variables are prefixed with CONTACTS_
    (e.g. CONTACTS_GEMINI_API_KEY). Empty values are treated as unset.

    Example:
        >>> config = ContactGraphConfig()
        >>> config.validate_api_keys(config.default_model)
        >>> print(config.store_path)
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="CONTACTS_",
        extra="ignore",
        env_ignore_empty=True,
    )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        return (
            init_settings,
            env_settings,
            dotenv_settings,
            _ProjectYamlSource(settings_cls),
            file_secret_settings,
        )

    openai_api_key: str | None = Field(
        default=None,
        description="OpenAI API key. Get from: https://platform.openai.com/api-keys",
    )

    anthropic_api_key: str | None = Field(
        default=None,
        description="Anthropic API key. Get from: https://console.anthropic.com/settings/keys",
    )

    gemini_api_key: str | None = Field(
        default=None,
        description="Google Gemini API key. Get from: https://aistudio.google.com/apikey",
    )

    default_model: str = Field(
        default="gemini/gemini-2.5-flash",
        description="Oracle model in provider/model-name form; needs vision and web search for full use",
    )

    store_path: Path = Field(
        default=Path("contacts.json"),
        description="JSON snapshot file holding the contact store",
    )

    rpm: int = Field(default=40, ge=0, description="Max oracle requests per minute (0 = unlimited)")

    timeout: int = Field(default=120, gt=0, description="Oracle request timeout in seconds")

    discovery_tag: str = Field(
        default="auto-discovered",
        description="Tag put on contacts created by enrichment discovery",
    )

    org_keywords: Annotated[list[str], NoDecode] = Field(
        default_factory=lambda: ["organization", "organisation", "company"],
        description="Relationship words that mark a discovered contact as an organization",
    )

    @model_validator(mode="after")
    def _export_api_keys(self) -> "ContactGraphConfig":
        """Export API keys to environment so LiteLLM can find them."""
        key_map = {
            "OPENAI_API_KEY": self.openai_api_key,
            "ANTHROPIC_API_KEY": self.anthropic_api_key,
            "GEMINI_API_KEY": self.gemini_api_key,
        }
        for env_var, value in key_map.items():
            if value and env_var not in os.environ:
                os.environ[env_var] = value
        return self

    @field_validator("store_path", mode="before")
    @classmethod
    def resolve_store_path(cls, v: Path | str) -> Path:
        """Make the store path absolute and create its parent directory."""
        path = Path(v).expanduser().resolve()
        path.parent.mkdir(parents=True, exist_ok=True)
        return path

    @field_validator("org_keywords", mode="before")
    @classmethod
    def split_keywords(cls, v: list[str] | str) -> list[str]:
        if isinstance(v, str):
            return [k.strip() for k in v.split(",") if k.strip()]
        return v

    def validate_api_keys(self, model: str) -> None:
        """Check that the API key for the model's provider is available.

        Raises:
            ValueError: If the provider's key is missing
        """
        required = {
            "openai/": ("OPENAI_API_KEY", self.openai_api_key, "https://platform.openai.com/api-keys"),
            "anthropic/": ("ANTHROPIC_API_KEY", self.anthropic_api_key, "https://console.anthropic.com/settings/keys"),
            "gemini/": ("GEMINI_API_KEY", self.gemini_api_key, "https://aistudio.google.com/apikey"),
        }
        for prefix, (env_var, value, url) in required.items():
            if model.startswith(prefix) and not value and not os.environ.get(env_var):
                raise ValueError(
                    f"{env_var} not found. Set in environment or .env file.\n"
                    f"Get your key from: {url}"
                )
        # Ollama and other local providers need no key
