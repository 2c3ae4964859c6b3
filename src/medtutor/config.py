"""Settings for MedTutor.

Values are layered: built-in defaults, then the ``settings:`` section of a
YAML file (``config/tutor.yaml`` by default), then environment variables.
A ``.env`` file in the working directory is loaded first.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field


DEFAULT_CONFIG_PATH = Path("./config/tutor.yaml")

# Environment variable -> settings field
ENV_OVERRIDES = {
    "OPENAI_API_KEY": "openai_api_key",
    "OPENAI_BASE_URL": "openai_base_url",
    "MEDTUTOR_CHAT_MODEL": "chat_model",
    "MEDTUTOR_EMBEDDING_MODEL": "embedding_model",
    "MEDTUTOR_TOPIC": "topic",
    "MEDTUTOR_LOG_LEVEL": "log_level",
    "CLIENT_ORIGIN": "client_origin",
    "HOST": "host",
    "PORT": "port",
}


class Settings(BaseModel):
    """Runtime configuration for the tutor backend."""

    # LLM backend
    openai_api_key: Optional[str] = Field(default=None, description="Credential for the OpenAI-compatible API")
    openai_base_url: Optional[str] = Field(default=None, description="Override for the API base URL")
    chat_model: str = "gpt-4o-mini"
    embedding_model: str = "text-embedding-3-small"
    request_timeout: float = 300.0
    chat_temperature: float = 0.3
    case_temperature: float = 0.7

    # Chunking and retrieval
    chunk_size: int = 1200
    chunk_overlap: int = 200
    chat_top_k: int = 6
    evaluation_top_k: int = 5
    fallback_chunks: int = Field(default=3, description="Chunks used when retrieval finds nothing; 0 disables")
    case_sample_chunks: int = 10
    adaptive_case_sample_chunks: int = 15

    # Tutor
    topic: str = "t2dm"

    # Web server
    api_prefix: str = "/api"
    client_origin: str = "http://localhost:5173"
    host: str = "0.0.0.0"
    port: int = 4000
    log_level: str = "INFO"

    @property
    def llm_configured(self) -> bool:
        """Whether a credential for the language-model backend is present."""
        return bool(self.openai_api_key)


def _read_yaml_settings(config_path: Path) -> Dict[str, Any]:
    with open(config_path, "r") as f:
        config = yaml.safe_load(f) or {}
    return config.get("settings", {}) or {}


def load_settings(config_path: Optional[Union[str, Path]] = None, env: Optional[Dict[str, str]] = None) -> Settings:
    """Load settings from defaults, YAML and the environment.

    Args:
        config_path: Path to a YAML config file. Defaults to ``config/tutor.yaml``
            when it exists.
        env: Environment mapping to read overrides from. Defaults to ``os.environ``
            after loading ``.env``.

    Returns:
        Populated Settings instance.
    """
    if env is None:
        load_dotenv()
        env = dict(os.environ)

    values: Dict[str, Any] = {}

    path = Path(config_path) if config_path else DEFAULT_CONFIG_PATH
    if path.exists():
        values.update(_read_yaml_settings(path))
    elif config_path:
        raise FileNotFoundError(f"Config file not found: {path}")

    for var, field_name in ENV_OVERRIDES.items():
        if env.get(var):
            values[field_name] = env[var]

    return Settings(**values)
