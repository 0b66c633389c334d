from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file='.env',
        env_file_encoding='utf-8',
        case_sensitive=False,
        extra='ignore',
    )

    app_name: str = 'ProofAI Report Service'

    data_dir: Path = Field(default=Path('./data'))
    log_level: str = 'INFO'

    # Incident summarization (OpenAI-compatible chat completions)
    openai_api_key: str | None = Field(
        default=None,
        validation_alias=AliasChoices('OPENAI_API_KEY', 'API_KEY', 'LLM_API_KEY'),
    )
    openai_base_url: str | None = Field(
        default=None,
        validation_alias=AliasChoices('BASE_URL', 'OPENAI_BASE_URL', 'LLM_BASE_URL'),
    )
    summary_model: str = 'gpt-4o-mini'
    summary_temperature: float = 0.3
    summary_max_tokens: int = 1500
    summary_timeout_seconds: int = 60

    # Reverse geocoding for context.location
    geocode_api_key: str | None = Field(
        default=None,
        validation_alias=AliasChoices('GEOCODE_API_KEY', 'GOOGLE_MAPS_API_KEY'),
    )
    geocode_base_url: str = 'https://maps.googleapis.com/maps/api/geocode/json'
    geocode_timeout_seconds: int = 10

    # PDF report branding
    report_title: str = 'ProofAI Legal Analysis Report'
    report_brand_name: str = 'ProofAI'
    report_brand_url: str = 'www.proofai.app'
    report_default_reviewer: str = 'ProofAI Legal Assistant'


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    settings = Settings()
    settings.data_dir.mkdir(parents=True, exist_ok=True)
    (settings.data_dir / 'reports').mkdir(parents=True, exist_ok=True)
    return settings
