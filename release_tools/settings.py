"""Stored per-workspace settings.

Settings live in a YAML file at the root of the workspace::

    default_scheme: MyApp
    settings:
      "*":
        keychain: login
      MyApp:
        api_key: ABC123
      macOS:
        api_issuer: 69a6de70-...
      MyApp.macOS:
        api_key: DEF456

Values are merged from the least to the most specific layer: ``*``, then the
scheme, then the platform, then ``<scheme>.<platform>``. Values given on the
command line override all of them.
"""

from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import Any, Dict, Optional

import yaml  # type: ignore[import]

from release_tools.errors import SettingsError

SETTINGS_FILENAME = ".rt.yaml"
ALL_SCHEMES = "*"


@dataclass
class BasicSettings:
    user: Optional[str] = None
    keychain: Optional[str] = None
    api_key: Optional[str] = None
    api_issuer: Optional[str] = None

    @classmethod
    def keys(cls) -> list:
        return [f.name for f in fields(cls)]

    @classmethod
    def from_dict(cls, values: Optional[Dict[str, Any]], layer: str = "") -> "BasicSettings":
        if values is None:
            return cls()
        if not isinstance(values, dict):
            raise SettingsError(f"Settings for {layer!r} must be a mapping")

        known = set(cls.keys())
        unknown = sorted(str(k) for k in values if normalize_key(str(k)) not in known)
        if unknown:
            raise SettingsError(f"Unknown settings for {layer!r}: {', '.join(unknown)}")
        return cls(
            **{
                normalize_key(str(k)): None if v is None else str(v)
                for k, v in values.items()
            }
        )

    def to_dict(self) -> Dict[str, str]:
        values = {f.name: getattr(self, f.name) for f in fields(self)}
        return {k: v for k, v in values.items() if v is not None}

    def merged(self, other: Optional["BasicSettings"]) -> "BasicSettings":
        """Return a copy with any values set in other taking precedence"""
        if other is None:
            return replace(self)
        return BasicSettings(
            **{name: getattr(other, name) or getattr(self, name) for name in self.keys()}
        )


def normalize_key(key: str) -> str:
    """Accept dash-case keys (api-key) as well as snake_case"""
    return key.strip().replace("-", "_")


def layer_name(scheme: Optional[str] = None, platform: Optional[str] = None) -> str:
    if scheme and platform:
        return f"{scheme}.{platform}"
    return scheme or platform or ALL_SCHEMES


@dataclass
class WorkspaceSettings:
    default_scheme: Optional[str] = None
    layers: Dict[str, BasicSettings] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "WorkspaceSettings":
        layers = raw.get("settings") or {}
        if not isinstance(layers, dict):
            raise SettingsError("'settings' must be a mapping of scheme names to settings")
        default_scheme = raw.get("default_scheme")
        return cls(
            default_scheme=None if default_scheme is None else str(default_scheme),
            layers={
                str(name): BasicSettings.from_dict(values, str(name))
                for name, values in layers.items()
            },
        )

    def to_dict(self) -> Dict[str, Any]:
        raw: Dict[str, Any] = {}
        if self.default_scheme:
            raw["default_scheme"] = self.default_scheme
        layers = {name: s.to_dict() for name, s in sorted(self.layers.items()) if s.to_dict()}
        if layers:
            raw["settings"] = layers
        return raw

    def settings(
        self,
        scheme: Optional[str] = None,
        platform: Optional[str] = None,
        overrides: Optional[BasicSettings] = None,
    ) -> BasicSettings:
        """Merge the stored layers for a scheme and platform, then apply overrides"""
        merged = BasicSettings().merged(self.layers.get(ALL_SCHEMES))
        scheme = scheme or self.default_scheme
        if scheme:
            merged = merged.merged(self.layers.get(scheme))
            if platform:
                merged = merged.merged(self.layers.get(platform))
                merged = merged.merged(self.layers.get(f"{scheme}.{platform}"))
        return merged.merged(overrides)

    def get(
        self, key: str, scheme: Optional[str] = None, platform: Optional[str] = None
    ) -> Optional[str]:
        name = _checked_key(key)
        return getattr(self.settings(scheme, platform), name)

    def set(
        self,
        key: str,
        value: Optional[str],
        scheme: Optional[str] = None,
        platform: Optional[str] = None,
    ) -> None:
        """Store a value in the layer selected by scheme and platform"""
        name = _checked_key(key)
        if platform and not (scheme or self.default_scheme):
            # Platform layers are only read once a scheme is known
            raise SettingsError(
                f"Setting {key!r} for platform {platform!r} needs a scheme. "
                "Pass --scheme or set default_scheme."
            )
        layer = layer_name(scheme, platform)
        settings = self.layers.setdefault(layer, BasicSettings())
        setattr(settings, name, value)

    def unset(
        self, key: str, scheme: Optional[str] = None, platform: Optional[str] = None
    ) -> None:
        self.set(key, None, scheme, platform)


def _checked_key(key: str) -> str:
    name = normalize_key(key)
    if name not in BasicSettings.keys():
        raise SettingsError(
            f"Unknown setting {key!r}. Expected one of: {', '.join(BasicSettings.keys())}"
        )
    return name


def load_settings(path: Path) -> WorkspaceSettings:
    """Load settings from a YAML file; a missing file means no settings"""
    if not path.exists():
        return WorkspaceSettings()

    try:
        with open(path, "r", encoding="utf-8") as f:
            raw = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise SettingsError(f"Failed to parse settings file {path}: {e}")
    except OSError as e:
        raise SettingsError(f"Failed to read settings file {path}: {e}")

    if raw is None:
        return WorkspaceSettings()
    if not isinstance(raw, dict):
        raise SettingsError(f"Settings file {path} must contain a mapping")
    return WorkspaceSettings.from_dict(raw)


def save_settings(settings: WorkspaceSettings, path: Path) -> None:
    try:
        with open(path, "w", encoding="utf-8") as f:
            yaml.safe_dump(settings.to_dict(), f, sort_keys=False, default_flow_style=False)
    except OSError as e:
        raise SettingsError(f"Failed to write settings file {path}: {e}")
