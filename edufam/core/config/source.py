"""pydantic-settings sources reading the `config/` tree.

    config/
        grading.yaml  logging.yaml  storage.yaml  web.yaml
        env.d/<env>/  same names, merged over the base files
        secrets.yaml  never committed; looked up most specific first
"""

import functools
import typing as t
from collections.abc import Mapping
from pathlib import Path

import pydantic as p
import yaml
from pydantic_settings import PydanticBaseSettingsSource, SettingsError

from edufam.model import DeploymentEnvironment

# fields of Settings and Secrets that locate the files rather than come from them
LocatorKeys: t.Final = frozenset({"env", "root", "override"})


class CurrentState(t.TypedDict, total=False):
    root: t.Required[p.AnyUrl]
    env: t.Required[DeploymentEnvironment]


class SettingsCurrentState(CurrentState, total=False):
    override: t.Required[tuple[str, ...]]


def env_paths(root: p.AnyUrl, env: DeploymentEnvironment) -> list[Path]:
    """Directories searched for YAML files, least specific first."""
    assert root.scheme == "file" and root.path is not None, "root is not a legible location of YAML files"
    base = Path(root.path)
    if env is DeploymentEnvironment.Local:
        return [base]
    return [base, base / "env.d" / env.value]


def merge(base: Mapping[str, t.Any], over: Mapping[str, t.Any]) -> dict[str, t.Any]:
    """`over` laid on top of `base`; mappings found in both merge key by key, anything else replaces."""
    merged = dict(base)
    for k, v in over.items():
        below = merged.get(k)
        merged[k] = merge(below, v) if isinstance(below, Mapping) and isinstance(v, Mapping) else v
    return merged


class SettingsSource(PydanticBaseSettingsSource):
    """Collects one value per top-level field; a KeyError from `get_field_value` means "not here"."""

    def __call__(self) -> dict[str, t.Any]:
        data: dict[str, t.Any] = {}
        for field_name, field in self.settings_cls.model_fields.items():
            if field_name in LocatorKeys:
                continue
            try:
                value, key, is_complex = self.get_field_value(field, field_name)
            except KeyError:
                continue
            except (OSError, yaml.YAMLError) as e:
                raise SettingsError(f"cannot read {field_name!r} from {self!r}") from e
            data[key] = self.prepare_field_value(field_name, field, value, is_complex)
        return data

    def prepare_field_value(
        self, field_name: str, field: p.fields.FieldInfo, value: t.Any, value_is_complex: bool
    ) -> t.Any:
        return value


class OverrideSettingsSource(SettingsSource):
    """Applies `-o grading.bulk_validation=skip_invalid` style overrides.

    Values are parsed as YAML, so `-o web.edufam.auth.leeway_seconds=30` sets
    an int.
    """

    @functools.cached_property
    def parsed_options(self) -> dict[str, t.Any]:
        current_state = t.cast(SettingsCurrentState, self.current_state)
        parsed: dict[str, t.Any] = {}
        for o in current_state["override"]:
            path, sep, raw = o.partition("=")
            keys = [k.strip() for k in path.split(".")]
            if not sep or not all(keys):
                raise ValueError(f"override must have the form key.path=value: {o!r}")
            leaf: dict[str, t.Any] = {keys[-1]: yaml.safe_load(raw.strip())}
            for key in reversed(keys[:-1]):
                leaf = {key: leaf}
            parsed = merge(parsed, leaf)
        return parsed

    def get_field_value(self, field: p.fields.FieldInfo, field_name: str) -> tuple[t.Any, str, bool]:
        # pydantic-settings deep-merges this partial section over the YAML one
        option = self.parsed_options[field_name]
        return option, field_name, isinstance(option, Mapping)


class YAMLCascadingSettingsSource(SettingsSource):
    """Loads `<field>.yaml` from the config root, then from `env.d/<env>/`."""

    @functools.cached_property
    def load_paths(self) -> list[Path]:
        current_state = t.cast(SettingsCurrentState, self.current_state)
        return env_paths(current_state["root"], current_state["env"])

    def get_field_value(self, field: p.fields.FieldInfo, field_name: str) -> tuple[t.Any, str, bool]:
        docs = [yaml.safe_load(fn.read_text(encoding="utf8")) for fn in self._files(field_name)]
        if not docs:
            raise KeyError(field_name)
        value = docs[0]
        for doc in docs[1:]:
            value = merge(value, doc) if isinstance(value, Mapping) and isinstance(doc, Mapping) else doc
        return value, field_name, isinstance(value, Mapping)

    def _files(self, field_name: str) -> t.Iterator[Path]:
        for path in self.load_paths:
            fn = path / f"{field_name}.yaml"
            if fn.exists():
                yield fn


class YAMLSecretsSource(SettingsSource):
    """Reads `secrets.yaml` from the most specific config directory that has one.

    Files are not merged: an environment's secrets replace the base ones
    entirely.
    """

    @functools.cached_property
    def secrets(self) -> dict[str, t.Any]:
        current_state = t.cast(CurrentState, self.current_state)
        for path in reversed(env_paths(current_state["root"], current_state["env"])):
            fn = path / "secrets.yaml"
            if fn.exists():
                return yaml.safe_load(fn.read_text(encoding="utf8")) or {}
        return {}

    def get_field_value(self, field: p.fields.FieldInfo, field_name: str) -> tuple[t.Any, str, bool]:
        value = self.secrets[field_name]
        return value, field_name, isinstance(value, Mapping)
