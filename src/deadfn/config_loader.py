"""
Config loader - YAML or TOML configuration files.

Searched in the start directory, in this order:
  deadfn.yaml, deadfn.yml, .deadfn.yaml, .deadfn.yml, deadfn.toml,
  Cargo.toml (only when it has a [package.metadata.deadfn] table)
"""

from __future__ import annotations
import logging
from pathlib import Path
from typing import Dict, Any, Optional, List
from dataclasses import dataclass, field

import yaml

try:  # py3.11+
    import tomllib as tomli
except ImportError:
    import tomli

from .errors import ConfigError
from .func_graph import RootPolicy
from .visibility import Visibility

logger = logging.getLogger(__name__)

FORMATS = ("plain", "json", "report")
_VISIBILITY_NAMES = {v.value: v for v in Visibility}
_VISIBILITY_NAMES.update({v.label: v for v in Visibility})


@dataclass
class DeadfnConfig:
    """Analysis configuration; CLI flags override these values."""
    paths: List[str] = field(default_factory=lambda: ["."])
    exclude: List[str] = field(default_factory=list)
    format: str = "report"
    output: Optional[str] = None
    strict: bool = False
    workers: Optional[int] = None

    # root policy
    keep_alive: List[str] = field(default_factory=list)
    ignore: List[str] = field(default_factory=list)
    root_visibilities: List[str] = field(default_factory=lambda: ["public"])
    entry_names: List[str] = field(default_factory=lambda: ["main"])
    include_tests: bool = True
    include_ffi: bool = True
    include_trait_impls: bool = True

    source: Optional[Path] = None  # file this config was read from

    def root_policy(self) -> RootPolicy:
        visibilities = set()
        for name in self.root_visibilities:
            vis = _VISIBILITY_NAMES.get(str(name).strip())
            if vis is None:
                raise ConfigError(str(self.source or "<config>"), f"unknown visibility {name!r}")
            visibilities.add(vis)
        return RootPolicy(
            root_visibilities=visibilities,
            entry_names=set(self.entry_names),
            include_tests=self.include_tests,
            include_ffi=self.include_ffi,
            include_trait_impls=self.include_trait_impls,
            keep_alive=list(self.keep_alive),
            ignore=list(self.ignore),
        )


def load_config(config_path: Optional[Path] = None, start: Optional[Path] = None) -> DeadfnConfig:
    """
    Load a configuration file.

    Args:
        config_path: explicit file; searched for under ``start`` when None

    Returns:
        DeadfnConfig: defaults when no file is found
    """
    if config_path:
        return _load_config_file(Path(config_path))

    found_config = find_config_file(start)
    if found_config:
        logger.info("using config file %s", found_config)
        return _load_config_file(found_config)

    return DeadfnConfig()


def find_config_file(start: Optional[Path] = None) -> Optional[Path]:
    base = Path(start) if start is not None else Path(".")
    if base.is_file():
        base = base.parent
    candidates = [
        base / 'deadfn.yaml',
        base / 'deadfn.yml',
        base / '.deadfn.yaml',
        base / '.deadfn.yml',
        base / 'deadfn.toml',
        base / 'Cargo.toml',  # [package.metadata.deadfn]
    ]

    for candidate in candidates:
        if candidate.exists():
            if candidate.name == 'Cargo.toml':
                if _has_deadfn_config(candidate):
                    return candidate
                continue
            return candidate

    return None


def _load_config_file(config_path: Path) -> DeadfnConfig:
    if not config_path.exists():
        raise ConfigError(str(config_path), "config file does not exist")

    suffix = config_path.suffix.lower()

    if suffix in ['.yaml', '.yml']:
        config = _load_yaml_config(config_path)
    elif suffix == '.toml':
        config = _load_toml_config(config_path)
    else:
        raise ConfigError(str(config_path), f"unsupported config format: {suffix or '<none>'}")
    config.source = config_path
    return config


def _load_yaml_config(config_path: Path) -> DeadfnConfig:
    try:
        with config_path.open('r', encoding='utf-8') as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as exc:
        raise ConfigError(str(config_path), f"invalid YAML: {exc}") from exc

    if not data:
        return DeadfnConfig()

    return _parse_config_data(data, config_path)


def _load_toml_config(config_path: Path) -> DeadfnConfig:
    try:
        with config_path.open('rb') as f:
            data = tomli.load(f)
    except tomli.TOMLDecodeError as exc:
        raise ConfigError(str(config_path), f"invalid TOML: {exc}") from exc

    # Cargo.toml keeps it under [package.metadata.deadfn]
    if config_path.name == 'Cargo.toml':
        config_data = data.get('package', {}).get('metadata', {}).get('deadfn', {})
    else:
        config_data = data

    return _parse_config_data(config_data, config_path)


def _has_deadfn_config(cargo_path: Path) -> bool:
    try:
        with cargo_path.open('rb') as f:
            data = tomli.load(f)
    except (OSError, tomli.TOMLDecodeError):
        return False
    return 'deadfn' in data.get('package', {}).get('metadata', {})


def _string_list(data: Dict[str, Any], key: str, path: Path) -> List[str]:
    value = data[key]
    if isinstance(value, str):
        return [value]
    if not isinstance(value, list):
        raise ConfigError(str(path), f"'{key}' must be a list of strings")
    return [str(v) for v in value]


def _parse_config_data(data: Dict[str, Any], path: Path) -> DeadfnConfig:
    if not isinstance(data, dict):
        raise ConfigError(str(path), "top level must be a mapping")
    config = DeadfnConfig()

    for key in ('paths', 'exclude', 'keep_alive', 'ignore', 'root_visibilities', 'entry_names'):
        if key in data:
            setattr(config, key, _string_list(data, key, path))
    if 'format' in data:
        fmt = str(data['format']).strip().lower()
        if fmt not in FORMATS:
            raise ConfigError(str(path), f"unknown format {fmt!r} (expected one of {', '.join(FORMATS)})")
        config.format = fmt
    if 'output' in data:
        config.output = str(data['output']) if data['output'] is not None else None
    if 'workers' in data:
        try:
            config.workers = int(data['workers']) if data['workers'] is not None else None
        except (TypeError, ValueError) as exc:
            raise ConfigError(str(path), "'workers' must be an integer") from exc
        if config.workers is not None and config.workers < 1:
            raise ConfigError(str(path), "'workers' must be at least 1")
    for key in ('strict', 'include_tests', 'include_ffi', 'include_trait_impls'):
        if key in data:
            setattr(config, key, bool(data[key]))

    # policy switches may also be grouped under `roots:`
    roots = data.get('roots')
    if isinstance(roots, dict):
        for key in ('include_tests', 'include_ffi', 'include_trait_impls'):
            if key in roots:
                setattr(config, key, bool(roots[key]))
        for key in ('root_visibilities', 'entry_names', 'keep_alive'):
            if key in roots:
                setattr(config, key, _string_list(roots, key, path))
        if 'visibilities' in roots:
            config.root_visibilities = _string_list(roots, 'visibilities', path)

    return config


def create_example_config() -> str:
    return """# deadfn configuration
paths:
  - "."
format: "report"       # plain | json | report
# output: "deadfn_results"
strict: false

exclude:
  - "vendor/**"
  - "**/generated/**"

# Functions that must never be reported (fnmatch on the full path)
ignore:
  - "*::__private_*"

roots:
  # visibilities that make a function an entry point
  visibilities: ["public"]
  entry_names: ["main"]
  include_tests: true        # #[test], #[tokio::test], #[bench] ...
  include_ffi: true          # #[no_mangle], #[export_name]
  include_trait_impls: true  # methods of `impl Trait for Type` and trait defaults
  # extra roots: exact path, path suffix or fnmatch pattern
  keep_alive:
    - "plugin::register"
"""


def save_example_config(output_path: Optional[Path] = None) -> Path:
    if output_path is None:
        output_path = Path("deadfn.yaml")

    content = create_example_config()
    output_path.write_text(content, encoding='utf-8')

    return output_path
