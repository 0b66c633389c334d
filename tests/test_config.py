from __future__ import annotations

from proofai.config import Settings, get_settings


def test_defaults_create_data_directories(tmp_path):
    settings = get_settings()

    assert settings.data_dir == tmp_path / 'data'
    assert (settings.data_dir / 'reports').is_dir()
    assert settings.summary_model == 'gpt-4o-mini'
    assert settings.report_default_reviewer == 'ProofAI Legal Assistant'


def test_alias_environment_names(monkeypatch):
    monkeypatch.setenv('LLM_API_KEY', 'llm-key')
    monkeypatch.setenv('GOOGLE_MAPS_API_KEY', 'maps-key')
    monkeypatch.setenv('OPENAI_BASE_URL', 'https://llm.test/v1')

    settings = Settings(_env_file=None)

    assert settings.openai_api_key == 'llm-key'
    assert settings.geocode_api_key == 'maps-key'
    assert settings.openai_base_url == 'https://llm.test/v1'


def test_settings_are_cached():
    assert get_settings() is get_settings()
