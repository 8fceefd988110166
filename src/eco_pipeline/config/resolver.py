"""Environment-scoped configuration resolver.

Loads ``pipeline.<env>.json`` for one environment and resolves values under
a fixed precedence chain::

    override arguments  >  loaded config  >  caller default  >  None

Configuration files hold plain, non-secret values only.  Secrets reach the
pipeline exclusively through override arguments; :meth:`ConfigResolver.
assert_no_secrets` rejects a file that looks like it carries a live one.
"""
from __future__ import annotations

import copy
import json
import re
from pathlib import Path
from typing import Any, Mapping

import structlog

from eco_pipeline.domain.value_objects.pipeline import Environment
from eco_pipeline.shared.exceptions import ConfigParseError, SecretDetected

logger = structlog.get_logger(__name__)

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

CONFIG_FILE_TEMPLATE = "pipeline.{env}.json"

# Relative to the config root, first match wins.
SEARCH_DIRS: tuple[str, ...] = (".", "templates", "config")

COMMENT_PREFIX = "_"

SECRET_KEY_PATTERN = re.compile(
    r"password|secret|private_key|api_key|token|credential",
    re.IGNORECASE,
)

PLACEHOLDER_PATTERN = re.compile(
    r"(?i:placeholder)|example\.com|your-|<[^<>]+>|REPLACE",
)

_MIN_SECRET_LENGTH = 4


def config_file_name(env: Environment) -> str:
    return CONFIG_FILE_TEMPLATE.format(env=env.config_name)


def candidate_paths(env: Environment, config_root: Path) -> list[Path]:
    """Return the ordered list of locations searched for *env*'s file."""
    name = config_file_name(env)
    return [(config_root / directory / name) for directory in SEARCH_DIRS]


def is_secret_key(key: str) -> bool:
    return SECRET_KEY_PATTERN.search(key) is not None


def is_placeholder(value: str) -> bool:
    return PLACEHOLDER_PATTERN.search(value) is not None


def read_config_file(path: Path) -> dict[str, Any]:
    """Parse a config file, dropping ``_``-prefixed documentation keys.

    Raises:
        ConfigParseError: If the file is not a JSON object or is not UTF-8.
    """
    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise ConfigParseError(
            f"Malformed configuration file {path}: {exc.msg} (line {exc.lineno})",
            context={"path": str(path)},
        ) from exc
    except UnicodeDecodeError as exc:
        raise ConfigParseError(
            f"Configuration file {path} is not valid UTF-8: {exc.reason} (byte {exc.start})",
            context={"path": str(path)},
        ) from exc
    except OSError as exc:
        raise ConfigParseError(
            f"Cannot read configuration file {path}: {exc}",
            context={"path": str(path)},
        ) from exc

    if not isinstance(raw, dict):
        raise ConfigParseError(
            f"Configuration file {path} must contain a JSON object, "
            f"got {type(raw).__name__}",
            context={"path": str(path)},
        )
    return {
        key: value
        for key, value in raw.items()
        if not str(key).startswith(COMMENT_PREFIX)
    }


# ---------------------------------------------------------------------------
# ConfigResolver
# ---------------------------------------------------------------------------


class ConfigResolver:
    """Run-scoped configuration store with precedence resolution.

    Usage::

        resolver = ConfigResolver()
        resolver.load(Environment.DEV, Path("."))
        resolver.assert_no_secrets()
        namespace = resolver.get("namespace", "default", overrides)
    """

    def __init__(self) -> None:
        self._store: dict[str, Any] = {}
        self._env: Environment | None = None
        self._config_root: Path | None = None
        self._source: Path | None = None

    # -- loading ------------------------------------------------------------

    def load(self, env: Environment, config_root: Path) -> Path | None:
        """Load the first matching config file for *env*.

        Returns:
            The path that was loaded, or ``None`` when no file exists.  The
            store is empty in the latter case.

        Raises:
            ConfigParseError: If the matched file is malformed.
        """
        self._env = env
        self._config_root = Path(config_root)
        self._store = {}
        self._source = None

        for path in candidate_paths(env, self._config_root):
            if path.is_file():
                self._store = read_config_file(path)
                self._source = path
                logger.info(
                    "config_loaded",
                    environment=env.value,
                    path=str(path),
                    keys=len(self._store),
                )
                return path

        logger.info(
            "config_not_found",
            environment=env.value,
            config_root=str(self._config_root),
        )
        return None

    def reload(self) -> Path | None:
        """Re-read configuration for the previously loaded environment."""
        if self._env is None or self._config_root is None:
            raise RuntimeError("reload() called before load()")
        return self.load(self._env, self._config_root)

    # -- access -------------------------------------------------------------

    @property
    def source(self) -> Path | None:
        return self._source

    @property
    def environment(self) -> Environment | None:
        return self._env

    def __contains__(self, key: object) -> bool:
        return key in self._store

    def get(
        self,
        key: str,
        default: Any = None,
        overrides: Mapping[str, Any] | None = None,
    ) -> Any:
        """Resolve *key*: overrides, then loaded config, then *default*."""
        if overrides and key in overrides:
            return copy.deepcopy(overrides[key])
        if key in self._store:
            return copy.deepcopy(self._store[key])
        return default

    def from_file(self, key: str) -> bool:
        """Return True when *key* is present in the loaded file."""
        return key in self._store

    def snapshot(self) -> dict[str, Any]:
        """Return a deep copy of the loaded store."""
        return copy.deepcopy(self._store)

    # -- secret assertion ---------------------------------------------------

    def find_secret_keys(self) -> list[str]:
        """Return loaded keys that look like they hold a live secret."""
        offending: list[str] = []
        for key, value in self._store.items():
            if not is_secret_key(key) or value is None:
                continue
            text = value if isinstance(value, str) else json.dumps(value)
            if len(text) > _MIN_SECRET_LENGTH and not is_placeholder(text):
                offending.append(key)
        return offending

    def assert_no_secrets(self) -> None:
        """Fail when any secret-shaped key holds a non-placeholder value.

        Raises:
            SecretDetected: Listing every offending key.
        """
        offending = self.find_secret_keys()
        if offending:
            logger.error(
                "config_secret_detected",
                keys=offending,
                path=str(self._source) if self._source else None,
            )
            raise SecretDetected(
                offending,
                source=str(self._source) if self._source else None,
            )
        logger.debug("config_secret_check_passed", keys=len(self._store))
