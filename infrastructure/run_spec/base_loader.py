# infrastructure/run_spec/base_loader.py
from __future__ import annotations

import json
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict

from domain.exceptions import ValidationError
from domain.run_spec import HttpMethod, RunSpec


class RunSpecLoadError(Exception):
    pass


_FIELD_ALIASES = {
    "target_url": ("targetUrl", "target_url", "url"),
    "virtual_users": ("virtualUsers", "virtual_users", "vus"),
    "duration": ("duration",),
    "method": ("method",),
    "body": ("body",),
}


class RunSpecLoaderBase(ABC):
    """Load a RunSpec from a file; subclasses only parse the file format."""

    def load_from_file(self, path: str | Path) -> RunSpec:
        p = Path(path)
        if not p.exists():
            raise RunSpecLoadError(f"Run spec file not found: {path}")

        data = self._load_file(p)
        if data is None:
            raise RunSpecLoadError(f"Run spec file is empty: {path}")
        if not isinstance(data, dict):
            raise RunSpecLoadError(f"Run spec file is invalid: {path}")

        return self.load_from_dict(data)

    def load_from_dict(self, data: Dict[str, Any]) -> RunSpec:
        fields = {name: _pick(data, aliases) for name, aliases in _FIELD_ALIASES.items()}
        if fields["target_url"] is None:
            raise RunSpecLoadError("Run spec is missing targetUrl")

        try:
            return RunSpec(
                target_url=str(fields["target_url"]),
                virtual_users=_as_int("virtualUsers", fields["virtual_users"], default=1),
                duration=_as_int("duration", fields["duration"], default=30),
                method=HttpMethod.parse(fields["method"] or "GET"),
                body=_as_body(fields["body"]),
            )
        except ValidationError as exc:
            raise RunSpecLoadError(str(exc)) from exc

    @abstractmethod
    def _load_file(self, path: Path) -> Any:
        ...


def _pick(data: Dict[str, Any], aliases: tuple) -> Any:
    for alias in aliases:
        if alias in data:
            return data[alias]
    return None


def _as_int(name: str, value: Any, default: int) -> int:
    if value is None:
        return default
    # int() would accept true and truncate 10.9; only ints and digit strings pass
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    if isinstance(value, str) and value.strip().isdigit():
        return int(value.strip())
    raise RunSpecLoadError(f"{name} must be an integer: {value!r}")


def _as_body(value: Any) -> str | None:
    # structured bodies written inline in YAML/JSON are sent as JSON text
    if value is None or isinstance(value, str):
        return value
    return json.dumps(value, ensure_ascii=False)
