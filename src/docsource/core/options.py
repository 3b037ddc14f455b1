import logging
import tomllib
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator

from ..config import get_settings
from ..errors import ConfigurationError
from .models import ReferenceSpec

logger = logging.getLogger(__name__)


# ============================================================================
# Source options
# ============================================================================

class PermalinkConfig(BaseModel):
    """Host permalink settings."""
    trailing_slash: bool = Field(
        default=False,
        description="Append a trailing slash to every computed path"
    )


class SourceOptions(BaseModel):
    """Options for one documentation source."""
    base_dir: Path = Field(
        default_factory=Path.cwd,
        description="Root directory files are resolved against"
    )
    path: Optional[List[str]] = Field(
        default=None,
        description="Glob pattern(s) selecting source files (required)"
    )
    route: Optional[str] = Field(
        default=None,
        description="URL route template forwarded to the host collection"
    )
    path_prefix: Optional[str] = Field(
        default=None,
        description="Leading URL segment prepended to every computed path"
    )
    sidebar_order: Dict[str, List[str]] = Field(
        default_factory=dict,
        description="Version -> ordered list of section titles"
    )
    index: List[str] = Field(
        default_factory=lambda: ["index"],
        description="Base names treated as directory index pages"
    )
    type_name: str = Field(
        default="FileNode",
        description="Graph type name for produced nodes"
    )
    refs: Dict[str, ReferenceSpec] = Field(
        default_factory=dict,
        description="Field name -> reference spec"
    )
    permalinks: PermalinkConfig = Field(default_factory=PermalinkConfig)

    @field_validator("path", mode="before")
    @classmethod
    def _listify_path(cls, value: Union[str, List[str], None]) -> Optional[List[str]]:
        if value is None or value == "" or value == []:
            return None
        if isinstance(value, str):
            return [value]
        return list(value)

    @field_validator("base_dir", mode="after")
    @classmethod
    def _resolve_base_dir(cls, value: Path) -> Path:
        return value.expanduser().resolve()

    @model_validator(mode="before")
    @classmethod
    def _normalize_refs(cls, data: Any) -> Any:
        """Resolve string/object reference shorthand into ReferenceSpec values."""
        if not isinstance(data, dict) or not data.get("refs"):
            return data
        if not isinstance(data["refs"], dict):
            raise ConfigurationError(
                f"Source option 'refs' must be a table of field -> reference, got {data['refs']!r}"
            )
        own_type = data.get("type_name") or "FileNode"
        normalized: Dict[str, ReferenceSpec] = {}
        for field_name, ref in data["refs"].items():
            normalized[field_name] = normalize_ref(ref, own_type)
        return {**data, "refs": normalized}

    def require_path(self) -> List[str]:
        """Return the glob patterns, raising ConfigurationError when none are set."""
        if not self.path:
            raise ConfigurationError("Source option 'path' (glob pattern) is required")
        return self.path


def normalize_ref(ref: Any, own_type: str) -> ReferenceSpec:
    """Normalize one declared reference.

    A bare string becomes ``{type_name: ref, create: False}``. A mapping gets the
    source's own type name when it names none, and ``create`` coerced to bool.
    """
    if isinstance(ref, ReferenceSpec):
        return ref
    if isinstance(ref, str):
        return ReferenceSpec(type_name=ref, create=False)
    if isinstance(ref, dict):
        type_name = ref.get("type_name") or ref.get("typeName") or own_type
        return ReferenceSpec(
            type_name=type_name,
            create=bool(ref.get("create")),
            route=ref.get("route"),
        )
    raise ConfigurationError(f"Invalid reference declaration: {ref!r}")


# ============================================================================
# docsource.toml
# ============================================================================

def find_config_file(start_path: Path = Path("."), name: Optional[str] = None) -> Optional[Path]:
    """Search for the options file in start_path and its parents."""
    name = name or get_settings().config_file
    current = start_path.resolve()
    for _ in range(len(current.parts)):
        check_path = current / name
        if check_path.exists():
            return check_path
        if current == current.parent:
            break
        current = current.parent
    return None


def load_source_options(config_path: Optional[Path] = None) -> SourceOptions:
    """Load and validate source options from a TOML file.

    ``base_dir`` is resolved relative to the directory holding the file.
    """
    if config_path is None:
        config_path = find_config_file()
        if config_path is None:
            raise ConfigurationError(f"No {get_settings().config_file} found")

    try:
        with open(config_path, "rb") as f:
            data = tomllib.load(f)
    except FileNotFoundError as exc:
        raise ConfigurationError(f"Config file not found: {config_path}") from exc
    except tomllib.TOMLDecodeError as exc:
        raise ConfigurationError(f"Malformed {config_path}: {exc}") from exc

    source = dict(data.get("source") or {})
    root = config_path.resolve().parent
    source["base_dir"] = root / source.get("base_dir", ".")
    if "permalinks" in data:
        source["permalinks"] = data["permalinks"]

    try:
        options = SourceOptions(**source)
    except ValidationError as exc:
        raise ConfigurationError(f"Invalid options in {config_path}: {exc}") from exc

    logger.debug("Loaded source options from %s", config_path)
    return options


def create_config_file(path: Path, pattern: str = "**/*.md", type_name: str = "DocPage") -> Path:
    """Write a starter docsource.toml into ``path``."""
    content = f"""[source]
base_dir = "docs"
path = "{pattern}"
type_name = "{type_name}"
index = ["index", "README"]
# path_prefix = "docs"
# route = "/docs/:slug"

[source.sidebar_order]
# v1 = ["Getting Started", "Guides"]

[source.refs]
# author = {{ type_name = "Author", create = true }}
# tags = "Tag"

[permalinks]
trailing_slash = false
"""
    target = path / get_settings().config_file
    with open(target, "w", encoding="utf-8") as f:
        f.write(content)
    return target
