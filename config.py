# config.py
# Single settings record for the portal. Every recognised option is a field
# below; anything else is rejected.

import os
import logging
from typing import Optional

from dotenv import load_dotenv
from pydantic import Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

try:
    import streamlit as st
except Exception:  # running outside Streamlit
    st = None


BASE_DIR = os.path.dirname(__file__)
DEFAULT_DB_PATH = os.path.join(BASE_DIR, "data", "school.db")

SECRETS_SECTION = "portal"


class ConfigError(ValueError):
    """Raised for unknown or malformed configuration values."""


class PortalSettings(BaseSettings):
    """Portal settings from PORTAL_* environment variables, `.env` and init kwargs."""

    model_config = SettingsConfigDict(
        env_prefix="PORTAL_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="forbid",
        frozen=True,
    )

    db_path: str = Field(default=DEFAULT_DB_PATH, description="SQLite file of the account store")
    openai_api_key: Optional[str] = Field(default=None, description="FAQ model credential")
    faq_model: str = Field(default="gpt-4o-mini", description="Model answering FAQ questions")
    faq_timeout_seconds: float = Field(default=20.0, gt=0, description="Bound on one model call")
    session_max_age_seconds: int = Field(default=60 * 60 * 24 * 7, gt=0, description="Identity lifetime")
    seed_demo_accounts: bool = Field(default=False, description="Seed one demo account per role")
    log_level: str = Field(default="INFO", description="Root logging level")

    @field_validator("log_level")
    @classmethod
    def _known_level(cls, value: str) -> str:
        level = value.strip().upper()
        if level not in logging.getLevelNamesMapping():
            raise ValueError(f"unknown log level {value!r}")
        return level


# ---------- secrets ----------
def _get_secret(key: str) -> Optional[str]:
    if st is None:
        return None
    try:
        return st.secrets[key]
    except Exception:
        return None


def _get_nested_secret(section: str, key: str) -> Optional[str]:
    if st is None:
        return None
    try:
        section_dict = st.secrets.get(section, None)
        if section_dict is not None:
            return section_dict.get(key)
    except Exception:
        pass
    return None


def resolve_openai_key() -> Optional[str]:
    """
    Resolution order:
    1) st.secrets["api_keys"]["openai_api_key"]
    2) st.secrets["openai_api_key"]
    3) st.secrets["OPENAI_API_KEY"]
    4) os.environ["OPENAI_API_KEY"]
    """
    for key in (
        _get_nested_secret("api_keys", "openai_api_key"),
        _get_secret("openai_api_key"),
        _get_secret("OPENAI_API_KEY"),
    ):
        if key:
            return key
    return os.getenv("OPENAI_API_KEY")


def _secrets_section() -> dict:
    if st is None:
        return {}
    try:
        section = st.secrets.get(SECRETS_SECTION, None)
    except Exception:
        return {}
    return dict(section) if section else {}


def load_settings(overrides: Optional[dict] = None) -> PortalSettings:
    """
    Build settings. Precedence, highest first: explicit overrides, the
    [portal] secrets section, PORTAL_* environment variables, `.env`, defaults.
    """
    # plain OPENAI_API_KEY in .env has no PORTAL_ prefix
    load_dotenv(".env")
    values = _secrets_section()
    values.update(overrides or {})
    try:
        settings = PortalSettings(**values)
    except ValidationError as e:
        raise ConfigError(str(e)) from e
    if settings.openai_api_key is None:
        settings = settings.model_copy(update={"openai_api_key": resolve_openai_key()})
    return settings


def configure_logging(settings: PortalSettings) -> None:
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
