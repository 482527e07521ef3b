from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Optional

import yaml

from lintlens_core.caps import BATCH_MAX_RANGE, TOTAL_MAX_RANGE
from lintlens_core.errors import ConfigError

logger = logging.getLogger(__name__)

DEFAULT_CONFIG: dict = {
    "repo_owner": None,
    "repo_name": None,
    "commit": None,
    "local_git_repo": None,
    "review_comments_max": 10,
    "review_comments_total_max": 200,  # 0 = unlimited
    "review_comments_ignore": [],  # exact messages (case-insensitive) never to post
    "dismissed_reviews_repost_comments": True,
    "dismissed_reviews_exclude_reviews_from_team": [],  # team slugs whose dismissals keep lines covered
    "dismiss_stale_reviews": False,  # dismiss bot reviews left with only outdated comments
    "branches_ignore": [],
    "skip_folders": [],
    "file_extensions": ["php", "js", "twig"],
    "lint": True,
    "phpcs": True,
    "svg_checks": False,
    "php_path": "php",
    "phpcs_path": None,
    "phpcs_standard": "WordPress-VIP-Go",
    "phpcs_severity": 1,
    "phpcs_sniffs_exclude": None,
    "phpcs_runtime_set": [],  # "key value" strings, e.g. "testVersion 7.3-"
    "phpcs_severity_repo_options_file": False,
    "svg_scanner_path": None,
    "informational_url": None,
    "dry_run": False,
    "output": None,  # append raw scan results as JSON to this file
    "debug_level": 0,
}

REPO_OPTIONS_FILE = ".lintlens-options.yml"

_LIST_KEYS = (
    "review_comments_ignore",
    "dismissed_reviews_exclude_reviews_from_team",
    "branches_ignore",
    "skip_folders",
    "file_extensions",
    "phpcs_runtime_set",
)
_BOOL_KEYS = (
    "dismissed_reviews_repost_comments",
    "dismiss_stale_reviews",
    "lint",
    "phpcs",
    "svg_checks",
    "phpcs_severity_repo_options_file",
    "dry_run",
)
_INT_RANGES = {
    "review_comments_max": BATCH_MAX_RANGE,
    "review_comments_total_max": TOTAL_MAX_RANGE,
    "phpcs_severity": range(1, 11),
    "debug_level": range(0, 3),
}
_REQUIRED_KEYS = ("repo_owner", "repo_name", "commit", "local_git_repo")
_SECRET_KEYS = ("github_token",)


def load_config(config_path: str = ".lintlens.yml", cli_overrides: Optional[dict] = None) -> dict:
    """
    Load configuration by merging (in order of precedence):
      1. Built-in defaults
      2. .lintlens.yml in the current directory
      3. CLI argument overrides
    """
    config = {key: list(value) if isinstance(value, list) else value for key, value in DEFAULT_CONFIG.items()}

    path = Path(config_path)
    if path.exists():
        with open(path) as f:
            try:
                file_config = yaml.safe_load(f) or {}
            except yaml.YAMLError as e:
                raise ConfigError(f"{config_path} is not valid YAML: {e}")
        if not isinstance(file_config, dict):
            raise ConfigError(f"{config_path} must contain a mapping of options.")
        config.update(file_config)

    if cli_overrides:
        for key, value in cli_overrides.items():
            if value is not None:
                config[key] = value

    config["github_token"] = os.environ.get("GITHUB_TOKEN")

    return config


def _as_list(value, separator: str = ",") -> list[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [item.strip() for item in value.split(separator) if item.strip()]
    return [str(item).strip() for item in value if str(item).strip()]


def _as_bool(key: str, value) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str) and value.strip().lower() in ("true", "false"):
        return value.strip().lower() == "true"
    raise ConfigError(f"{key} must be true or false, got {value!r}.")


def _as_int(key: str, value, valid: range) -> int:
    try:
        number = int(value)
    except (TypeError, ValueError):
        raise ConfigError(f"{key} must be an integer, got {value!r}.")
    if number not in valid:
        raise ConfigError(f"{key} must be between {valid.start} and {valid.stop - 1}, got {number}.")
    return number


def _parse_runtime_set(items: list[str]) -> list[list[str]]:
    pairs = []
    for item in items:
        parts = item.split(" ", 1)
        if len(parts) < 2 or not parts[0].strip() or not parts[1].strip():
            raise ConfigError(
                "phpcs_runtime_set is incorrectly formed; each entry must be a key and a value, "
                'e.g. "testVersion 7.3-".'
            )
        pairs.append([parts[0].strip(), parts[1].strip()])
    return pairs


def validate_config(config: dict) -> dict:
    """Normalize option types and reject unusable configurations.

    Returns the same dict, updated in place. Raises ConfigError.
    """
    missing = [key for key in _REQUIRED_KEYS if not config.get(key)]
    if missing:
        raise ConfigError(f"Missing required option(s): {', '.join(missing)}.")

    for key in _LIST_KEYS:
        config[key] = _as_list(config.get(key), separator="|||" if key == "review_comments_ignore" else ",")
    for key in _BOOL_KEYS:
        config[key] = _as_bool(key, config.get(key))
    for key, valid in _INT_RANGES.items():
        config[key] = _as_int(key, config.get(key), valid)

    config["review_comments_ignore"] = [m.lower() for m in config["review_comments_ignore"]]
    config["file_extensions"] = [e.lower().lstrip(".") for e in config["file_extensions"]]
    config["phpcs_runtime_set"] = _parse_runtime_set(config["phpcs_runtime_set"])
    config["local_git_repo"] = str(config["local_git_repo"]).rstrip("/")

    if not config["lint"] and not config["phpcs"]:
        raise ConfigError("Both lint and phpcs are disabled, nothing to do.")
    if config["phpcs"] and not config.get("phpcs_path"):
        raise ConfigError("phpcs is enabled but phpcs_path is not set.")
    if config["svg_checks"] and not config.get("svg_scanner_path"):
        raise ConfigError("svg_checks is enabled but no svg_scanner_path is configured.")

    url = config.get("informational_url")
    if url and not str(url).startswith(("http://", "https://")):
        raise ConfigError(f"informational_url must start with http:// or https://, got {url!r}.")

    return config


def scanned_extensions(config: dict) -> list[str]:
    extensions = list(config["file_extensions"])
    if config.get("svg_checks") and "svg" not in extensions:
        extensions.append("svg")
    return extensions


def apply_repo_options(config: dict, options_text: str | None) -> dict:
    """Apply the options file committed in the scanned repository.

    Only ``phpcs_severity`` may be set this way, and only when
    ``phpcs_severity_repo_options_file`` is enabled. Invalid values are
    logged and ignored.
    """
    if not options_text or not config.get("phpcs_severity_repo_options_file"):
        return config
    try:
        repo_options = yaml.safe_load(options_text) or {}
    except yaml.YAMLError as e:
        logger.warning("Ignoring unreadable %s: %s", REPO_OPTIONS_FILE, e)
        return config
    if not isinstance(repo_options, dict) or "phpcs_severity" not in repo_options:
        return config
    try:
        config["phpcs_severity"] = _as_int("phpcs_severity", repo_options["phpcs_severity"], _INT_RANGES["phpcs_severity"])
        logger.info("phpcs_severity set to %d by %s", config["phpcs_severity"], REPO_OPTIONS_FILE)
    except ConfigError as e:
        logger.warning("Ignoring phpcs_severity from %s: %s", REPO_OPTIONS_FILE, e)
    return config


def redact_config(config: dict) -> dict:
    """Copy of ``config`` safe to log."""
    return {key: ("***" if key in _SECRET_KEYS and value else value) for key, value in config.items()}
