"""Tests for contact_graph.config."""

import os
from unittest.mock import patch

import pytest

from contact_graph.config import ContactGraphConfig


class TestContactGraphConfig:
    """Test configuration loading and validation."""

    def test_default_config_loads(self):
        """Config loads with defaults when no env vars set."""
        with patch.dict(os.environ, {}, clear=True):
            config = ContactGraphConfig(_env_file=None)
        assert config.default_model == "gemini/gemini-2.5-flash"
        assert config.store_path.name == "contacts.json"
        assert config.store_path.is_absolute()
        assert config.org_keywords == ["organization", "organisation", "company"]

    def test_custom_model_from_env(self):
        """Custom model loaded from environment variable."""
        with patch.dict(os.environ, {"CONTACTS_DEFAULT_MODEL": "anthropic/claude-3-haiku"}):
            config = ContactGraphConfig(_env_file=None)
        assert config.default_model == "anthropic/claude-3-haiku"

    def test_org_keywords_from_env(self):
        """Comma-separated keywords are split."""
        with patch.dict(os.environ, {"CONTACTS_ORG_KEYWORDS": "company, employer"}):
            config = ContactGraphConfig(_env_file=None)
        assert config.org_keywords == ["company", "employer"]

    def test_validate_gemini_key_present(self):
        config = ContactGraphConfig(gemini_api_key="g-test", _env_file=None)
        config.validate_api_keys("gemini/gemini-2.5-flash")  # Should not raise

    def test_validate_gemini_key_missing(self):
        config = ContactGraphConfig(gemini_api_key=None, _env_file=None)
        with patch.dict(os.environ, {}, clear=True):
            with pytest.raises(ValueError, match="GEMINI_API_KEY"):
                config.validate_api_keys("gemini/gemini-2.5-flash")

    def test_validate_openai_key_missing(self):
        config = ContactGraphConfig(openai_api_key=None, _env_file=None)
        with patch.dict(os.environ, {}, clear=True):
            with pytest.raises(ValueError, match="OPENAI_API_KEY"):
                config.validate_api_keys("openai/gpt-4o-search-preview")

    def test_ollama_needs_no_key(self):
        """Local models don't require API keys."""
        config = ContactGraphConfig(_env_file=None)
        config.validate_api_keys("ollama/llama3")  # Should not raise

    def test_key_exported_for_litellm(self):
        with patch.dict(os.environ, {}, clear=True):
            ContactGraphConfig(anthropic_api_key="sk-ant-test", _env_file=None)
            assert os.environ["ANTHROPIC_API_KEY"] == "sk-ant-test"

    def test_store_parent_created(self, tmp_dir):
        """Store directory is created if it doesn't exist."""
        path = tmp_dir / "data" / "contacts.json"
        config = ContactGraphConfig(store_path=path, _env_file=None)
        assert config.store_path == path.resolve()
        assert path.parent.exists()

    def test_yaml_project_file(self, tmp_dir, monkeypatch):
        """contacts.yaml values apply when no env var overrides them."""
        (tmp_dir / "contacts.yaml").write_text("model: openai/gpt-4o\nrpm: 5\n")
        monkeypatch.chdir(tmp_dir)
        with patch.dict(os.environ, {}, clear=True):
            config = ContactGraphConfig(_env_file=None)
        assert config.default_model == "openai/gpt-4o"
        assert config.rpm == 5

    def test_env_beats_yaml(self, tmp_dir, monkeypatch):
        (tmp_dir / "contacts.yaml").write_text("rpm: 5\n")
        monkeypatch.chdir(tmp_dir)
        with patch.dict(os.environ, {"CONTACTS_RPM": "9"}, clear=True):
            config = ContactGraphConfig(_env_file=None)
        assert config.rpm == 9
