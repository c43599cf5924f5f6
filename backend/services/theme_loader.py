"""
Loads site themes from disk.

Each theme is a directory under ``settings.themes_dir`` named after the
theme id, containing ``manifest.json``, the template files the manifest
references, and ``theme.css``. Manifests that fail to parse or validate
are skipped and logged.
"""

import json
import logging
import re
from pathlib import Path
from typing import Any, Optional, Union

from pydantic import BaseModel, Field, ValidationError, field_validator

from infrastructure.config.settings import settings

logger = logging.getLogger(__name__)

REQUIRED_TEMPLATES = ("layout", "home", "posts", "post", "about")
THEME_CSS_FILE = "theme.css"
_THEME_ID = re.compile(r"^[a-z0-9][a-z0-9_-]{0,99}$")


class ThemeNotFoundError(Exception):
    """Raised when a theme id does not match an installed theme."""

    def __init__(self, theme_id: str):
        super().__init__(f"Theme '{theme_id}' not found")
        self.theme_id = theme_id


class TemplateNotFoundError(Exception):
    """Raised when a theme has no usable template for a page."""

    pass


class ColorOption(BaseModel):
    label: str
    value: str
    variable: Optional[str] = None


class FontOption(BaseModel):
    label: str
    value: str
    variable: Optional[str] = None


class ToggleOption(BaseModel):
    label: str
    type: str = "toggle"
    value: Union[bool, int, float, str] = False
    options: Optional[list[dict[str, Any]]] = None


class ThemeCustomizationOptions(BaseModel):
    colors: dict[str, ColorOption] = Field(default_factory=dict)
    fonts: dict[str, FontOption] = Field(default_factory=dict)
    options: dict[str, ToggleOption] = Field(default_factory=dict)


class ThemeManifest(BaseModel):
    """Contents of a theme's manifest.json; ``id`` comes from the directory name."""

    id: str = ""
    name: str
    description: str = ""
    version: str = "1.0.0"
    author: str = ""
    thumbnail: Optional[str] = None
    category: str = "personal"
    templates: dict[str, str]
    customization: ThemeCustomizationOptions = Field(default_factory=ThemeCustomizationOptions)

    @field_validator("templates")
    @classmethod
    def require_core_templates(cls, v: dict[str, str]) -> dict[str, str]:
        missing = [name for name in REQUIRED_TEMPLATES if name not in v]
        if missing:
            raise ValueError(f"Missing templates: {', '.join(missing)}")
        return v

    def has_template(self, name: str) -> bool:
        return name in self.templates


class ThemeLoader:
    """Reads and caches theme manifests, templates and stylesheets."""

    def __init__(self, themes_dir: str | Path | None = None):
        self.themes_dir = Path(themes_dir or settings.themes_dir)
        self._manifests: dict[str, ThemeManifest] | None = None
        self._files: dict[Path, str] = {}

    def _scan(self) -> dict[str, ThemeManifest]:
        manifests: dict[str, ThemeManifest] = {}
        if not self.themes_dir.is_dir():
            logger.warning("Themes directory %s does not exist", self.themes_dir)
            return manifests

        for theme_dir in sorted(self.themes_dir.iterdir()):
            manifest_path = theme_dir / "manifest.json"
            if not theme_dir.is_dir() or not manifest_path.is_file():
                continue
            if not _THEME_ID.match(theme_dir.name):
                logger.warning("Skipping theme with invalid id: %s", theme_dir.name)
                continue
            try:
                data = json.loads(manifest_path.read_text(encoding="utf-8"))
                data["id"] = theme_dir.name
                manifests[theme_dir.name] = ThemeManifest.model_validate(data)
            except (OSError, json.JSONDecodeError, ValidationError) as e:
                logger.error("Skipping theme %s: invalid manifest: %s", theme_dir.name, e)

        logger.info("Loaded %d themes from %s", len(manifests), self.themes_dir)
        return manifests

    @property
    def manifests(self) -> dict[str, ThemeManifest]:
        if self._manifests is None:
            self._manifests = self._scan()
        return self._manifests

    def list_themes(self) -> list[ThemeManifest]:
        return sorted(self.manifests.values(), key=lambda m: m.name.lower())

    def theme_exists(self, theme_id: str | None) -> bool:
        return bool(theme_id) and theme_id in self.manifests

    def get_theme(self, theme_id: str) -> ThemeManifest:
        """
        Look up a theme manifest.

        Raises:
            ThemeNotFoundError: If no installed theme has this id.
        """
        manifest = self.manifests.get(theme_id)
        if manifest is None:
            raise ThemeNotFoundError(theme_id)
        return manifest

    def _read(self, theme_id: str, relative: str) -> str:
        theme_dir = (self.themes_dir / theme_id).resolve()
        path = (theme_dir / relative).resolve()
        if not path.is_relative_to(theme_dir):
            raise TemplateNotFoundError(f"Template path escapes theme directory: {relative}")
        if path not in self._files:
            try:
                self._files[path] = path.read_text(encoding="utf-8")
            except OSError as e:
                raise TemplateNotFoundError(
                    f"Cannot read '{relative}' for theme '{theme_id}'"
                ) from e
        return self._files[path]

    def load_template(self, theme_id: str, template_name: str) -> str:
        """
        Read the template file registered under *template_name*.

        Raises:
            ThemeNotFoundError: Unknown theme.
            TemplateNotFoundError: The manifest has no such template or the
                file is missing.
        """
        manifest = self.get_theme(theme_id)
        relative = manifest.templates.get(template_name)
        if not relative:
            raise TemplateNotFoundError(
                f"Theme '{theme_id}' has no '{template_name}' template"
            )
        return self._read(theme_id, relative)

    def load_css(self, theme_id: str) -> str:
        """The theme's stylesheet, or "" when it ships none."""
        self.get_theme(theme_id)
        if not (self.themes_dir / theme_id / THEME_CSS_FILE).exists():
            return ""
        try:
            return self._read(theme_id, THEME_CSS_FILE)
        except TemplateNotFoundError as e:
            logger.warning("Skipping stylesheet for theme %s: %s", theme_id, e)
            return ""


_loader: ThemeLoader | None = None


def get_theme_loader() -> ThemeLoader:
    """Process-wide loader for the configured themes directory."""
    global _loader
    if _loader is None:
        _loader = ThemeLoader()
    return _loader
