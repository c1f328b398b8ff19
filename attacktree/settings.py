"""Settings for the attack tree tools.

Values come from, in increasing priority:

    1. the defaults below
    2. a YAML settings file (``attacktree.yaml`` in the working directory,
       or a path given explicitly)
    3. ATTACKTREE_* environment variables
"""

import os
from pathlib import Path
from typing import Literal, Optional
import yaml
from pydantic import BaseModel, ValidationError

from .errors import SettingsError
from .themes import DEFAULT_THEME

SETTINGS_FILE = 'attacktree.yaml'

ENV_OVERRIDES = {
    'ATTACKTREE_DEFAULT_THEME': 'default_theme',
    'ATTACKTREE_LAYOUT_ENGINE': 'layout_engine',
    'ATTACKTREE_OUTPUT_FORMAT': 'output_format',
}


class Settings(BaseModel):
    default_theme: str = DEFAULT_THEME
    layout_engine: str = 'dot'
    output_format: Literal['svg', 'png', 'pdf'] = 'svg'


def load_settings(path: Optional[str | Path] = None) -> Settings:
    """Load settings from a YAML file and the environment."""
    values: dict = {}

    file_path = Path(path) if path else Path.cwd() / SETTINGS_FILE
    if path and not file_path.exists():
        raise SettingsError(f"Settings file does not exist: {file_path}")
    if file_path.exists():
        try:
            with open(file_path, 'r', encoding='utf-8') as f:
                content = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise SettingsError(f"YAML parse error in {file_path}: {e}")
        if content is not None and not isinstance(content, dict):
            raise SettingsError(f"{file_path} must contain a mapping")
        values.update(content or {})

    for env_name, field_name in ENV_OVERRIDES.items():
        value = os.getenv(env_name)
        if value:
            values[field_name] = value

    try:
        return Settings(**values)
    except ValidationError as e:
        raise SettingsError(f"Settings validation error: {e}")
