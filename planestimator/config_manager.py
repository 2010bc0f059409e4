"""ConfigManager — environment profiles, secrets template and logging setup."""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path

logger = logging.getLogger(__name__)

# All known configuration keys with defaults
_CONFIG_KEYS: dict[str, dict[str, str]] = {
    "PLANEST_ENV": {"default": "development", "description": "Environment profile"},
    "PLANEST_LOG_LEVEL": {"default": "INFO", "description": "Logging level"},
    "PLANEST_CATALOG_PATH": {"default": ".planest/catalog.json", "description": "Persisted catalog blob"},
    "PLANEST_ADMIN_PASSPHRASE": {"default": "admin", "description": "Catalog editor passphrase (UI gate only)"},
    "GEMINI_API_KEY": {"default": "", "description": "Gemini API key (secret)"},
    "GEMINI_MODEL": {"default": "gemini-2.5-flash", "description": "Gemini model used for extraction"},
    "OLLAMA_HOST": {"default": "http://localhost:11434", "description": "Ollama LLM server"},
    "OLLAMA_MODEL": {"default": "llava", "description": "Ollama vision model"},
}

_PROFILES: dict[str, dict[str, str]] = {
    "development": {
        "PLANEST_ENV": "development",
        "PLANEST_LOG_LEVEL": "DEBUG",
    },
    "production": {
        "PLANEST_ENV": "production",
        "PLANEST_LOG_LEVEL": "WARNING",
    },
    "testing": {
        "PLANEST_ENV": "testing",
        "PLANEST_LOG_LEVEL": "DEBUG",
        "PLANEST_ADMIN_PASSPHRASE": "test-passphrase",
    },
}

_LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


class ConfigManager:
    """Manage planestimator configuration across environments."""

    def generate_env_template(self, project_path: str | Path) -> Path:
        """Create .env.example with all config keys.

        Returns the path to the generated file.
        """
        root = Path(project_path)
        env_path = root / ".env.example"

        lines = ["# Plan Estimator Configuration Template", "# Copy to .env and fill in values", ""]
        for key, info in _CONFIG_KEYS.items():
            lines.append(f"# {info['description']}")
            lines.append(f"{key}={info['default']}")
            lines.append("")

        env_path.write_text("\n".join(lines), encoding="utf-8")
        return env_path

    def load_config(self, project_path: str | Path = ".") -> dict[str, str]:
        """Load merged config: defaults -> profile -> config.json -> .env -> env vars.

        Returns a flat dict of configuration values.
        """
        root = Path(project_path)
        config: dict[str, str] = {}

        # 1. Defaults
        for key, info in _CONFIG_KEYS.items():
            config[key] = info["default"]

        # 2. Profile overrides
        env_name = os.environ.get("PLANEST_ENV", config["PLANEST_ENV"])
        config.update(_PROFILES.get(env_name, {}))

        # 3. .planest/config.json
        config_json = root / ".planest" / "config.json"
        if config_json.is_file():
            try:
                data = json.loads(config_json.read_text(encoding="utf-8"))
                for k, v in data.items():
                    config[k] = str(v)
            except (json.JSONDecodeError, OSError, AttributeError):
                logger.debug("Could not read config.json", exc_info=True)

        # 4. .env file
        env_file = root / ".env"
        if env_file.is_file():
            try:
                for line in env_file.read_text(encoding="utf-8").splitlines():
                    line = line.strip()
                    if not line or line.startswith("#"):
                        continue
                    if "=" in line:
                        k, v = line.split("=", 1)
                        config[k.strip()] = v.strip()
            except OSError:
                logger.debug("Could not read .env", exc_info=True)

        # 5. Environment variables override all
        for key in _CONFIG_KEYS:
            env_val = os.environ.get(key)
            if env_val is not None:
                config[key] = env_val

        return config


def configure_logging(level: str | int | None = None) -> None:
    """Install a root handler at *level* (defaults to ``PLANEST_LOG_LEVEL``)."""
    if level is None:
        level = ConfigManager().load_config().get("PLANEST_LOG_LEVEL", "INFO")
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO
    logging.basicConfig(level=level, format=_LOG_FORMAT)
