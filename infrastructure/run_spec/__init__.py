# infrastructure/run_spec/__init__.py
from infrastructure.run_spec.base_loader import RunSpecLoadError, RunSpecLoaderBase
from infrastructure.run_spec.json_loader import JsonRunSpecLoader
from infrastructure.run_spec.loader_registry import RunSpecLoaderRegistry
from infrastructure.run_spec.yaml_loader import YamlRunSpecLoader

__all__ = [
    "RunSpecLoadError",
    "RunSpecLoaderBase",
    "RunSpecLoaderRegistry",
    "YamlRunSpecLoader",
    "JsonRunSpecLoader",
]
