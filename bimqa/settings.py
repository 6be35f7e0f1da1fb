"""Settings — environment profiles, .env loading, and logging setup."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any

from pydantic import BaseModel

from bimqa.config import DEFAULT_DB_PATH, DEFAULT_EMBEDDING_DIMENSIONS, DEFAULT_EMBEDDING_MODEL

logger = logging.getLogger(__name__)

# All known configuration keys with defaults
_CONFIG_KEYS: dict[str, dict[str, Any]] = {
    "BIMQA_ENV": {"default": "development", "description": "Environment profile"},
    "BIMQA_LOG_LEVEL": {"default": "INFO", "description": "Logging level"},
    "BIMQA_DB_PATH": {"default": str(DEFAULT_DB_PATH), "description": "Element database path"},
    "BIMQA_CATALOG_TTL": {"default": "0", "description": "Catalog cache lifetime in seconds (0 = off)"},
    "BIMQA_LLM_PROVIDER": {"default": "ollama", "description": "Inference backend: ollama or openai"},
    "OLLAMA_HOST": {"default": "http://localhost:11434", "description": "Ollama LLM server"},
    "OLLAMA_MODEL": {"default": "qwen2.5", "description": "Ollama chat model"},
    "OPENAI_API_KEY": {"default": "", "description": "OpenAI-compatible API key (secret)"},
    "OPENAI_BASE_URL": {"default": "https://api.openai.com/v1", "description": "OpenAI-compatible base URL"},
    "OPENAI_CHAT_MODEL": {"default": "gpt-4o-mini", "description": "Chat model name"},
    "EMBEDDING_MODEL": {"default": DEFAULT_EMBEDDING_MODEL, "description": "Embedding model name"},
    "EMBEDDING_DIMENSIONS": {"default": str(DEFAULT_EMBEDDING_DIMENSIONS), "description": "Embedding size"},
    "APS_CLIENT_ID": {"default": "", "description": "APS client id (secret)"},
    "APS_CLIENT_SECRET": {"default": "", "description": "APS client secret (secret)"},
}

_PROFILES: dict[str, dict[str, str]] = {
    "development": {
        "BIMQA_ENV": "development",
        "BIMQA_LOG_LEVEL": "DEBUG",
    },
    "production": {
        "BIMQA_ENV": "production",
        "BIMQA_LOG_LEVEL": "WARNING",
    },
    "testing": {
        "BIMQA_ENV": "testing",
        "BIMQA_LOG_LEVEL": "DEBUG",
        "BIMQA_DB_PATH": ":memory:",
    },
}


class Settings(BaseModel):
    """Resolved runtime settings."""

    env: str = "development"
    log_level: str = "INFO"
    db_path: str = str(DEFAULT_DB_PATH)
    catalog_ttl: float = 0.0
    llm_provider: str = "ollama"
    ollama_host: str = "http://localhost:11434"
    ollama_model: str = "qwen2.5"
    openai_api_key: str = ""
    openai_base_url: str = "https://api.openai.com/v1"
    openai_chat_model: str = "gpt-4o-mini"
    embedding_model: str = DEFAULT_EMBEDDING_MODEL
    embedding_dimensions: int = DEFAULT_EMBEDDING_DIMENSIONS
    aps_client_id: str = ""
    aps_client_secret: str = ""


def _read_env_file(path: Path) -> dict[str, str]:
    values: dict[str, str] = {}
    try:
        for line in path.read_text(encoding="utf-8").splitlines():
            line = line.strip()
            if not line or line.startswith("#"):
                continue
            if "=" in line:
                k, v = line.split("=", 1)
                values[k.strip()] = v.strip().strip('"').strip("'")
    except OSError:
        logger.debug("Could not read %s", path, exc_info=True)
    return values


def load_config(project_path: str | Path | None = None) -> dict[str, str]:
    """Load merged config: defaults -> profile -> .env -> env vars.

    Returns a flat dict of configuration values.
    """
    config: dict[str, str] = {key: str(info["default"]) for key, info in _CONFIG_KEYS.items()}

    root = Path(project_path) if project_path is not None else Path.cwd()
    env_file = root / ".env"
    file_values = _read_env_file(env_file) if env_file.is_file() else {}

    env_name = os.environ.get("BIMQA_ENV") or file_values.get("BIMQA_ENV") or config["BIMQA_ENV"]
    config.update(_PROFILES.get(env_name, {}))
    config.update(file_values)

    # Environment variables override all
    for key in _CONFIG_KEYS:
        env_val = os.environ.get(key)
        if env_val is not None:
            config[key] = env_val

    return config


def load_settings(project_path: str | Path | None = None) -> Settings:
    """Return a :class:`Settings` model built from :func:`load_config`."""
    config = load_config(project_path)
    return Settings(
        env=config["BIMQA_ENV"],
        log_level=config["BIMQA_LOG_LEVEL"],
        db_path=config["BIMQA_DB_PATH"],
        catalog_ttl=float(config["BIMQA_CATALOG_TTL"] or 0),
        llm_provider=config["BIMQA_LLM_PROVIDER"].lower(),
        ollama_host=config["OLLAMA_HOST"],
        ollama_model=config["OLLAMA_MODEL"],
        openai_api_key=config["OPENAI_API_KEY"],
        openai_base_url=config["OPENAI_BASE_URL"],
        openai_chat_model=config["OPENAI_CHAT_MODEL"],
        embedding_model=config["EMBEDDING_MODEL"],
        embedding_dimensions=int(config["EMBEDDING_DIMENSIONS"] or DEFAULT_EMBEDDING_DIMENSIONS),
        aps_client_id=config["APS_CLIENT_ID"],
        aps_client_secret=config["APS_CLIENT_SECRET"],
    )


def generate_env_template(project_path: str | Path) -> Path:
    """Create .env.example with all config keys.

    Returns the path to the generated file.
    """
    env_path = Path(project_path) / ".env.example"
    lines = ["# bimqa configuration template", "# Copy to .env and fill in values", ""]
    for key, info in _CONFIG_KEYS.items():
        lines.append(f"# {info['description']}")
        lines.append(f"{key}={info['default']}")
        lines.append("")
    env_path.write_text("\n".join(lines), encoding="utf-8")
    return env_path


def configure_logging(level: str | int = "INFO") -> None:
    """Configure root logging for command-line and service use."""
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
