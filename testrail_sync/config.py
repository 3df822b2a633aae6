"""Configuration for the TestRail connection, read from the environment and .env files."""

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)

DEFAULT_PROJECT_ID = 34
DEFAULT_SUITE_ID = 5279
DEFAULT_TIMEOUT = 30.0
DEFAULT_RUN_NAME_PREFIX = "orbitalqa-run"

CONFIG_KEYS = [
    'TESTRAIL_URL', 'ORBITAL_TEST_RAIL', 'TESTRAIL_USER', 'TESTRAIL_PASSWORD',
    'TESTRAIL_PROJECT_ID', 'TESTRAIL_SUITE_ID', 'TESTRAIL_TIMEOUT',
    'TESTRAIL_VERIFY_TLS', 'TESTRAIL_STRICT', 'TESTRAIL_RUN_PREFIX',
]


@dataclass(frozen=True)
class TestRailConfig:
    """Connection settings passed to TestRailClient."""
    __test__ = False

    base_url: str = ""
    user: str = ""
    password: str = ""
    project_id: int = DEFAULT_PROJECT_ID
    suite_id: int = DEFAULT_SUITE_ID
    timeout: float = DEFAULT_TIMEOUT
    verify_tls: bool = False
    strict: bool = False
    run_name_prefix: str = DEFAULT_RUN_NAME_PREFIX


def load_config(env_file: Optional[Path] = None) -> dict:
    """Load config from environment variables and .env file.

    Environment variables take precedence over .env file values.
    """
    paths = [
        env_file,
        os.environ.get('TESTRAIL_SYNC_CONFIG'),
        Path.cwd() / '.env',
        Path(__file__).parent.parent / '.env',
    ]
    config = {}
    for p in paths:
        if p and Path(p).exists():
            for line in Path(p).read_text().splitlines():
                line = line.strip()
                if line and not line.startswith('#') and '=' in line:
                    key, value = line.split('=', 1)
                    config[key.strip()] = value.strip().strip('"').strip("'")
            logger.debug(f"Loaded settings from {p}")
            break

    for key in CONFIG_KEYS:
        env_value = os.environ.get(key)
        if env_value is not None:
            config[key] = env_value

    return config


def _as_bool(value: Optional[str], default: bool = False) -> bool:
    if value is None or value == "":
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def get_testrail_config(env_file: Optional[Path] = None, **overrides) -> TestRailConfig:
    """Build a TestRailConfig from load_config(); keyword overrides win."""
    raw = load_config(env_file)
    # ORBITAL_TEST_RAIL is the older name for the base URL
    base_url = raw.get('TESTRAIL_URL') or raw.get('ORBITAL_TEST_RAIL', '')
    try:
        settings = dict(
            base_url=base_url.rstrip('/'),
            user=raw.get('TESTRAIL_USER', ''),
            password=raw.get('TESTRAIL_PASSWORD', ''),
            project_id=int(raw.get('TESTRAIL_PROJECT_ID') or DEFAULT_PROJECT_ID),
            suite_id=int(raw.get('TESTRAIL_SUITE_ID') or DEFAULT_SUITE_ID),
            timeout=float(raw.get('TESTRAIL_TIMEOUT') or DEFAULT_TIMEOUT),
            verify_tls=_as_bool(raw.get('TESTRAIL_VERIFY_TLS')),
            strict=_as_bool(raw.get('TESTRAIL_STRICT')),
            run_name_prefix=raw.get('TESTRAIL_RUN_PREFIX') or DEFAULT_RUN_NAME_PREFIX,
        )
    except ValueError as e:
        raise ValueError(f"Invalid TestRail setting: {e}") from e

    settings.update({k: v for k, v in overrides.items() if v is not None})
    if not settings["base_url"]:
        logger.warning("TESTRAIL_URL is not set; API calls will fail")
    return TestRailConfig(**settings)
