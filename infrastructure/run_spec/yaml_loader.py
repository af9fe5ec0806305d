# infrastructure/run_spec/yaml_loader.py
from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml

from infrastructure.run_spec.base_loader import RunSpecLoaderBase, RunSpecLoadError


class YamlRunSpecLoader(RunSpecLoaderBase):
    def _load_file(self, path: Path) -> Any:
        with path.open("r", encoding="utf-8") as handle:
            try:
                return yaml.safe_load(handle)
            except yaml.YAMLError as exc:
                raise RunSpecLoadError(f"Invalid YAML in {path}: {exc}") from exc
