"""Settings for autositemap.

Settings are validated with voluptuous and frozen into a ``Settings`` value
handed to the manager. ``settings_from_env`` maps the environment variables of
the bot process onto the schema.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

import voluptuous as vol

from .const import DEFAULT_DEBOUNCE_DELAY, DEFAULT_NAME_PREFIX, DOMAIN
from .exceptions import ConfigError

LOGGER = logging.getLogger(__name__)


def _id_set(value: Any) -> frozenset[str]:
    if value is None:
        return frozenset()
    if isinstance(value, str):
        value = value.split(",")
    if not isinstance(value, list | tuple | set | frozenset):
        raise vol.Invalid("expected a comma-separated string or a list of ids")
    return frozenset(str(v).strip() for v in value if str(v).strip())


def _pattern(value: Any) -> re.Pattern[str] | None:
    if value is None or value == "":
        return None
    try:
        return re.compile(f"^(?:{value})")
    except re.error as exc:
        raise vol.Invalid(f"invalid regular expression: {exc}") from exc


def _flag(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    return bool(str(value).strip())


SETTINGS_SCHEMA = vol.Schema(
    {
        vol.Required("scope_id"): vol.All(str, vol.Length(min=1)),
        vol.Required("index_root_id"): vol.All(str, vol.Length(min=1)),
        vol.Optional("ignored_container_ids", default=frozenset()): _id_set,
        vol.Optional("debounce_delay", default=DEFAULT_DEBOUNCE_DELAY): vol.All(
            vol.Coerce(float), vol.Range(min=0, min_included=False)
        ),
        vol.Optional("name_prefix", default=DEFAULT_NAME_PREFIX): str,
        vol.Optional("strip_name_prefix", default=None): _pattern,
        vol.Optional("debug", default=False): _flag,
    }
)

# Environment variable -> settings key
ENV_KEYS: dict[str, str] = {
    "GUILD_ID": "scope_id",
    "SITEMAP_CATEGORY_ID": "index_root_id",
    "SITEMAP_IGNORE_CATEGORY_CHANNEL": "ignored_container_ids",
    "SITEMAP_DEBOUNCE_DELAY": "debounce_delay",
    "SITEMAP_NAME_PREFIX": "name_prefix",
    "SITEMAP_STRIP_NAME_PREFIX": "strip_name_prefix",
    "DEBUG_MODE": "debug",
}


@dataclass(frozen=True)
class Settings:
    """Validated settings consumed by the reconciliation engine."""

    scope_id: str
    index_root_id: str
    ignored_container_ids: frozenset[str] = field(default_factory=frozenset)
    debounce_delay: float = DEFAULT_DEBOUNCE_DELAY
    name_prefix: str = DEFAULT_NAME_PREFIX
    strip_name_prefix: re.Pattern[str] | None = None
    debug: bool = False

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Settings:
        """Validate ``data`` and build Settings, raising ConfigError on failure."""

        try:
            payload = SETTINGS_SCHEMA(dict(data))
        except vol.Invalid as exc:
            LOGGER.error(
                "Invalid settings: %s",
                exc,
                extra={"domain": DOMAIN, "op": "settings_validate", "path": exc.path},
            )
            raise ConfigError(f"invalid settings: {exc}") from exc
        return cls(**payload)


def settings_from_env(environ: Mapping[str, str]) -> Settings:
    """Build Settings from process environment variables.

    Empty variables are treated as unset so defaults apply.
    """

    data: dict[str, Any] = {}
    for env_key, key in ENV_KEYS.items():
        value = environ.get(env_key)
        if value:
            data[key] = value
    return Settings.from_dict(data)
