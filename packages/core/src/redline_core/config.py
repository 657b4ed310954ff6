import os
from pathlib import Path
from typing import Optional

import yaml

from redline_core.models import CommentSeverity

DEFAULT_CONFIG: dict = {
    "base_ref": "HEAD~1",
    "head_ref": "HEAD",
    "output_dir": ".redline",  # relative to the repository root
    "default_severity": "suggestion",
    "add_to_gitignore": True,
    "auto_fix_command": None,  # None = no agent configured; hand-off falls back to a warning
}


def load_config(config_path: str = ".redline.yml", cli_overrides: Optional[dict] = None) -> dict:
    """
    Load configuration by merging (in order of precedence):
      1. Built-in defaults
      2. .redline.yml in the current directory
      3. REDLINE_AUTO_FIX_COMMAND environment variable
      4. CLI argument overrides
    """
    config = dict(DEFAULT_CONFIG)

    path = Path(config_path)
    if path.exists():
        with open(path) as f:
            file_config = yaml.safe_load(f) or {}
        config.update(file_config)

    env_command = os.environ.get("REDLINE_AUTO_FIX_COMMAND")
    if env_command:
        config["auto_fix_command"] = env_command

    if cli_overrides:
        for key, value in cli_overrides.items():
            if value is not None:
                config[key] = value

    try:
        CommentSeverity(config["default_severity"])
    except ValueError:
        choices = ", ".join(s.value for s in CommentSeverity)
        raise ValueError(f"Invalid default_severity {config['default_severity']!r}. Choose one of: {choices}.")

    return config
