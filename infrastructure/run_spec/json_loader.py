# infrastructure/run_spec/json_loader.py
from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from infrastructure.run_spec.base_loader import RunSpecLoaderBase, RunSpecLoadError


class JsonRunSpecLoader(RunSpecLoaderBase):
    def _load_file(self, path: Path) -> Any:
        with path.open("r", encoding="utf-8") as handle:
            try:
                return json.load(handle)
            except json.JSONDecodeError as exc:
                raise RunSpecLoadError(f"Invalid JSON in {path}: {exc}") from exc
