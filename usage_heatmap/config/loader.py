"""
Configuration management and loading.

Handles palette, grid geometry, source field names and file locations.
"""

import re
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

import yaml

_HEX_COLOR = re.compile(r"^#(?:[0-9a-fA-F]{3}|[0-9a-fA-F]{6})$")


@dataclass(frozen=True)
class PaletteConfig:
    """Colors for the heatmap: one empty step plus four intensity levels."""
    background: str
    empty: str
    levels: Tuple[str, str, str, str]
    text: str
    meta: str

    def __post_init__(self):
        """Validate colors are hex values and exactly four levels exist."""
        if len(self.levels) != 4:
            raise ValueError("palette levels must contain exactly 4 colors")
        for color in (self.background, self.empty, self.text, self.meta) + tuple(self.levels):
            if not isinstance(color, str) or not _HEX_COLOR.match(color):
                raise ValueError(f"Invalid color value: {color!r}")

    def bucket_color(self, bucket: int) -> str:
        """Color for a bucket index (0 = empty, 1-4 = intensity levels)."""
        if bucket <= 0:
            return self.empty
        return self.levels[min(bucket, 4) - 1]


# Named themes - light follows GitHub's profile graph, dark its dark mode
THEMES: Dict[str, PaletteConfig] = {
    "light": PaletteConfig(
        background="#ffffff",
        empty="#ebedf0",
        levels=("#9be9a8", "#40c463", "#30a14e", "#216e39"),
        text="#24292f",
        meta="#57606a",
    ),
    "dark": PaletteConfig(
        background="#0d1117",
        empty="#161b22",
        levels=("#0e4429", "#006d32", "#26a641", "#39d353"),
        text="#c9d1d9",
        meta="#768390",
    ),
}


@dataclass(frozen=True)
class GridConfig:
    """Grid geometry and aggregation window."""
    weeks: int = 53
    cell_size: int = 10
    cell_gap: int = 3
    window_days: int = 366
    fallback_max_cost: float = 10.0

    def __post_init__(self):
        """Validate grid values are positive."""
        if self.weeks <= 0:
            raise ValueError("weeks must be > 0")
        if self.cell_size <= 0:
            raise ValueError("cell_size must be > 0")
        if self.cell_gap < 0:
            raise ValueError("cell_gap cannot be negative")
        if self.window_days <= 0:
            raise ValueError("window_days must be > 0")
        if self.fallback_max_cost <= 0:
            raise ValueError("fallback_max_cost must be > 0")

    @property
    def stride(self) -> int:
        """Distance between the origins of two neighbouring cells."""
        return self.cell_size + self.cell_gap


@dataclass(frozen=True)
class SourceConfig:
    """Field names a usage source reports cost and tokens under."""
    cost_fields: Tuple[str, ...] = ("totalCost", "costUSD")
    token_fields: Tuple[str, ...] = ("totalTokens",)

    def __post_init__(self):
        """Validate at least one cost field is recognized."""
        if not self.cost_fields:
            raise ValueError("cost_fields cannot be empty")


@dataclass(frozen=True)
class FetchConfig:
    """Command used to obtain raw usage JSON."""
    command: Tuple[str, ...] = ("npx", "ccusage@latest", "--json")
    timeout: float = 300.0

    def __post_init__(self):
        """Validate command and timeout."""
        if not self.command:
            raise ValueError("fetch command cannot be empty")
        if self.timeout <= 0:
            raise ValueError("fetch timeout must be > 0")


@dataclass(frozen=True)
class PathsConfig:
    """Locations of the persisted history and the rendered image."""
    history: str = "data/usage_history.json"
    svg: str = "usage.svg"


DEFAULT_SOURCE = "ccusage"


@dataclass(frozen=True)
class HeatmapConfig:
    """Complete application configuration."""
    palette: PaletteConfig = THEMES["light"]
    grid: GridConfig = field(default_factory=GridConfig)
    sources: Dict[str, SourceConfig] = field(
        default_factory=lambda: {DEFAULT_SOURCE: SourceConfig()},
        hash=False
    )
    source: str = DEFAULT_SOURCE
    fetch: FetchConfig = field(default_factory=FetchConfig)
    paths: PathsConfig = field(default_factory=PathsConfig)
    title: Optional[str] = None

    def get_source_config(self, source: Optional[str] = None) -> SourceConfig:
        """Get field names for a source, using the built-in ones if not specified."""
        return self.sources.get(source or self.source, SourceConfig())


def default_config() -> HeatmapConfig:
    """Configuration used when no file is given."""
    return HeatmapConfig()


def load_config(path: str) -> HeatmapConfig:
    """Load and validate heatmap configuration from YAML file.

    Unknown keys are rejected at every level so that a typo never silently
    falls back to a default.

    Args:
        path: Path to YAML configuration file

    Returns:
        Validated HeatmapConfig object

    Raises:
        FileNotFoundError: If config file doesn't exist
        yaml.YAMLError: If YAML is invalid
        ValueError: If configuration is invalid
    """
    config_path = Path(path)
    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    with open(config_path, 'r', encoding='utf-8') as f:
        try:
            raw_config = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise yaml.YAMLError(f"Invalid YAML in config file {path}: {e}")

    if not raw_config:
        raise ValueError("Configuration file is empty")
    if not isinstance(raw_config, dict):
        raise ValueError("Configuration must be a mapping")

    allowed_top_keys = {'theme', 'palette', 'grid', 'title', 'source', 'sources', 'fetch', 'paths'}
    unknown_keys = set(raw_config.keys()) - allowed_top_keys
    if unknown_keys:
        raise ValueError(f"Unknown configuration keys: {unknown_keys}")

    # Theme first, palette overrides on top of it
    theme = raw_config.get('theme', 'light')
    if theme not in THEMES:
        raise ValueError(f"'theme' must be one of: {sorted(THEMES)}")
    palette = _parse_palette(_section(raw_config, 'palette'), THEMES[theme])

    grid = _parse_grid(_section(raw_config, 'grid'))

    sources = {DEFAULT_SOURCE: SourceConfig()}
    for source_name, source_data in _section(raw_config, 'sources').items():
        if not isinstance(source_data, dict):
            raise ValueError(f"Source '{source_name}' must be a dictionary")
        sources[source_name] = _parse_source(source_data, f"sources.{source_name}")

    source = raw_config.get('source', DEFAULT_SOURCE)
    if source not in sources:
        raise ValueError(f"'source' refers to unknown source: {source}")

    title = raw_config.get('title')
    if title is not None and not isinstance(title, str):
        raise ValueError("'title' must be a string")

    return HeatmapConfig(
        palette=palette,
        grid=grid,
        sources=sources,
        source=source,
        fetch=_parse_fetch(_section(raw_config, 'fetch')),
        paths=_parse_paths(_section(raw_config, 'paths')),
        title=title
    )


def _section(raw_config: Dict, name: str) -> Dict:
    """Return an optional mapping section, rejecting non-mappings."""
    data = raw_config.get(name) or {}
    if not isinstance(data, dict):
        raise ValueError(f"'{name}' must be a dictionary")
    return data


def _check_keys(data: Dict, allowed: set, path: str) -> None:
    unknown_keys = set(data.keys()) - allowed
    if unknown_keys:
        raise ValueError(f"Unknown keys in {path}: {unknown_keys}")


def _parse_palette(data: Dict, base: PaletteConfig) -> PaletteConfig:
    """Apply palette overrides on top of a theme.

    Args:
        data: Palette overrides
        base: Theme palette to start from

    Returns:
        Validated PaletteConfig

    Raises:
        ValueError: If a color is invalid or levels has the wrong length
    """
    _check_keys(data, {'background', 'empty', 'levels', 'text', 'meta'}, "palette")

    overrides: Dict[str, Any] = dict(data)
    if 'levels' in overrides:
        levels = overrides['levels']
        if not isinstance(levels, list):
            raise ValueError("'levels' in palette must be a list")
        overrides['levels'] = tuple(levels)

    return replace(base, **overrides)


def _parse_grid(data: Dict) -> GridConfig:
    _check_keys(data, {'weeks', 'cell_size', 'cell_gap', 'window_days', 'fallback_max_cost'}, "grid")

    values: Dict[str, Any] = {}
    for key in ('weeks', 'cell_size', 'cell_gap', 'window_days'):
        if key in data:
            value = data[key]
            if isinstance(value, bool) or not isinstance(value, int):
                raise ValueError(f"'{key}' in grid must be an integer")
            values[key] = value

    if 'fallback_max_cost' in data:
        value = data['fallback_max_cost']
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise ValueError("'fallback_max_cost' in grid must be a number")
        values['fallback_max_cost'] = float(value)

    return GridConfig(**values)


def _parse_source(data: Dict, path: str) -> SourceConfig:
    """Parse and validate the field names of one usage source.

    Args:
        data: Source configuration data
        path: Path for error messages

    Returns:
        Validated SourceConfig

    Raises:
        ValueError: If configuration is invalid
    """
    _check_keys(data, {'cost_fields', 'token_fields'}, path)

    if 'cost_fields' not in data:
        raise ValueError(f"Missing required 'cost_fields' in {path}")

    values = {}
    for key in ('cost_fields', 'token_fields'):
        if key not in data:
            continue
        names = data[key]
        if not isinstance(names, list) or not all(isinstance(n, str) for n in names):
            raise ValueError(f"'{key}' in {path} must be a list of strings")
        values[key] = tuple(names)

    return SourceConfig(**values)


def _parse_fetch(data: Dict) -> FetchConfig:
    _check_keys(data, {'command', 'timeout'}, "fetch")

    values: Dict[str, Any] = {}
    if 'command' in data:
        command = data['command']
        if isinstance(command, str):
            command = command.split()
        if not isinstance(command, list) or not all(isinstance(c, str) for c in command):
            raise ValueError("'command' in fetch must be a string or a list of strings")
        values['command'] = tuple(command)
    if 'timeout' in data:
        timeout = data['timeout']
        if isinstance(timeout, bool) or not isinstance(timeout, (int, float)):
            raise ValueError("'timeout' in fetch must be a number")
        values['timeout'] = float(timeout)

    return FetchConfig(**values)


def _parse_paths(data: Dict) -> PathsConfig:
    _check_keys(data, {'history', 'svg'}, "paths")

    for key, value in data.items():
        if not isinstance(value, str) or not value:
            raise ValueError(f"'{key}' in paths must be a non-empty string")

    return PathsConfig(**data)
