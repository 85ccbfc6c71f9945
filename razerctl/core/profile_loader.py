"""Device profile loading and validation for YAML-based razerctl profiles."""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass
from importlib import resources
from importlib.resources.abc import Traversable
from pathlib import Path
from typing import Any

import yaml
from jsonschema import ValidationError, validators

from razerctl.core.errors import ProfileLoadError, ProfileValidationError
from razerctl.core.model import DeviceProfile, PollingRate

LOGGER = logging.getLogger(__name__)


class UniqueKeyLoader(yaml.SafeLoader):
    """YAML loader that rejects duplicate mapping keys."""


UniqueKeyLoader.yaml_implicit_resolvers = {
    key: list(value) for key, value in yaml.SafeLoader.yaml_implicit_resolvers.items()
}

for first_char, mappings in list(UniqueKeyLoader.yaml_implicit_resolvers.items()):
    UniqueKeyLoader.yaml_implicit_resolvers[first_char] = [
        (tag, regexp)
        for tag, regexp in mappings
        if tag != "tag:yaml.org,2002:bool"
    ]


def _construct_mapping(loader: UniqueKeyLoader, node: yaml.Node, deep: bool = False) -> dict[str, Any]:
    mapping: dict[str, Any] = {}
    for key_node, value_node in node.value:
        key = loader.construct_object(key_node, deep=deep)
        if key in mapping:
            raise ProfileValidationError(f"Duplicate key '{key}' in YAML document")
        mapping[key] = loader.construct_object(value_node, deep=deep)
    return mapping


UniqueKeyLoader.add_constructor(
    yaml.resolver.BaseResolver.DEFAULT_MAPPING_TAG,
    _construct_mapping,
)


@dataclass(frozen=True)
class LoadedProfiles:
    profiles: dict[str, DeviceProfile]
    warnings: tuple[str, ...]


def _load_schema_validator() -> Any:
    schema_text = resources.files("razerctl.schemas").joinpath("profile.schema.json").read_text(
        encoding="utf-8"
    )
    schema = json.loads(schema_text)
    validator_cls = validators.validator_for(schema)
    validator_cls.check_schema(schema)
    return validator_cls(schema)


def _profile_dirs() -> tuple[Path, Path]:
    xdg_config = Path(os.environ.get("XDG_CONFIG_HOME", Path.home() / ".config"))
    xdg_data = Path(os.environ.get("XDG_DATA_HOME", Path.home() / ".local/share"))
    return xdg_config / "razerctl/profiles", xdg_data / "razerctl/profiles"


def _read_yaml(path: Path | Traversable) -> dict[str, Any]:
    try:
        content = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ProfileLoadError(f"Could not read profile file {path}: {exc}") from exc

    try:
        loaded = yaml.load(content, Loader=UniqueKeyLoader)
    except yaml.YAMLError as exc:
        raise ProfileValidationError(f"Invalid YAML in {path}: {exc}") from exc

    if not isinstance(loaded, dict):
        raise ProfileValidationError(f"Profile file {path} must contain a mapping at root")
    return loaded


def _check_semantics(profile: DeviceProfile, source: Path | Traversable) -> None:
    if len(set(profile.dpi_values)) != len(profile.dpi_values):
        raise ProfileValidationError(f"{profile.id}.dpi_values must not repeat values ({source})")
    if profile.default_dpi not in profile.dpi_values:
        raise ProfileValidationError(
            f"{profile.id}.default_dpi {profile.default_dpi} is not one of dpi_values ({source})"
        )
    rates = profile.rate_values
    if len(set(rates)) != len(rates):
        raise ProfileValidationError(f"{profile.id}.polling_rates must not repeat rates ({source})")
    if profile.default_polling_rate not in rates:
        raise ProfileValidationError(
            f"{profile.id}.default_polling_rate {profile.default_polling_rate} is not a listed rate ({source})"
        )


def _build_profile(doc: dict[str, Any], source: Path | Traversable) -> DeviceProfile:
    validator = _load_schema_validator()
    try:
        validator.validate(doc)
    except ValidationError as exc:
        path = ".".join(str(p) for p in exc.path)
        where = f" ({path})" if path else ""
        raise ProfileValidationError(f"Schema validation failed for {source}{where}: {exc.message}") from exc

    profile = DeviceProfile(
        id=doc["id"],
        name=doc["name"],
        vendor_id=int(doc["vendor_id"]),
        product_id=int(doc["product_id"]),
        wired_product_ids=tuple(int(p) for p in doc.get("wired_product_ids", [])),
        vendor_usage_page=int(doc["vendor_usage_page"]),
        vendor_usage=int(doc["vendor_usage"]),
        dpi_report_id=int(doc.get("dpi_report_id", 5)),
        dpi_values=tuple(int(v) for v in doc["dpi_values"]),
        default_dpi=int(doc["default_dpi"]),
        polling_rates=tuple(
            PollingRate(rate=int(p["rate"]), code=int(p["code"])) for p in doc["polling_rates"]
        ),
        default_polling_rate=int(doc["default_polling_rate"]),
        confirm_timeout_s=float(doc.get("confirm_timeout_s", 2.0)),
        property_keys=tuple(doc.get("property_keys", [])),
    )
    _check_semantics(profile, source)
    return profile


def _iter_packaged_profile_paths() -> list[Traversable]:
    profile_root = resources.files("razerctl.profiles")
    return [item for item in profile_root.iterdir() if item.name.endswith((".yml", ".yaml"))]


def _iter_user_profile_paths() -> list[Path]:
    paths: list[Path] = []
    for directory in _profile_dirs():
        if not directory.exists() or not directory.is_dir():
            continue
        paths.extend(sorted(p for p in directory.iterdir() if p.suffix in {".yml", ".yaml"}))
    return paths


def load_profiles() -> LoadedProfiles:
    profiles: dict[str, DeviceProfile] = {}
    warnings: list[str] = []

    for path in sorted(_iter_packaged_profile_paths(), key=lambda p: p.name):
        doc = _read_yaml(path)
        profile = _build_profile(doc, path)
        profiles[profile.id] = profile

    for path in _iter_user_profile_paths():
        doc = _read_yaml(path)
        profile = _build_profile(doc, path)
        if profile.id in profiles:
            warning = f"User profile '{profile.id}' overrides packaged profile"
            LOGGER.warning(warning)
            warnings.append(warning)
        profiles[profile.id] = profile

    return LoadedProfiles(profiles=profiles, warnings=tuple(warnings))
