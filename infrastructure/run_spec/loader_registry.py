# infrastructure/run_spec/loader_registry.py
from __future__ import annotations

from pathlib import Path
from typing import Dict, Tuple

from domain.run_spec import RunSpec
from infrastructure.run_spec.base_loader import RunSpecLoaderBase, RunSpecLoadError
from infrastructure.run_spec.json_loader import JsonRunSpecLoader
from infrastructure.run_spec.yaml_loader import YamlRunSpecLoader


class RunSpecLoaderRegistry:
    """Resolve run spec files (specs/hello.yaml, specs/post.json) to a loader by suffix."""

    def __init__(self) -> None:
        yaml_loader = YamlRunSpecLoader()
        self._by_suffix: Dict[str, RunSpecLoaderBase] = {
            ".json": JsonRunSpecLoader(),
            ".yaml": yaml_loader,
            ".yml": yaml_loader,
        }

    @property
    def supported_suffixes(self) -> Tuple[str, ...]:
        return tuple(sorted(self._by_suffix))

    def get_loader(self, path: str | Path) -> RunSpecLoaderBase:
        suffix = Path(path).suffix.lower()
        try:
            return self._by_suffix[suffix]
        except KeyError:
            raise RunSpecLoadError(
                f"Unsupported run spec format '{suffix or Path(path).name}', "
                f"expected one of: {', '.join(self.supported_suffixes)}"
            ) from None

    def load(self, path: str | Path) -> RunSpec:
        return self.get_loader(path).load_from_file(path)
