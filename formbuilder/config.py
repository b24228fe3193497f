"""
Package settings.

Defaults can be overridden with environment variables:

    FORMBUILDER_FORMS_DIR   directory holding stored form YAML files (default: ./forms)
    FORMBUILDER_MAX_PASSES  recompute pass limit (default: number of fields + 1)
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

FORMS_DIR_ENV = "FORMBUILDER_FORMS_DIR"
MAX_PASSES_ENV = "FORMBUILDER_MAX_PASSES"


@dataclass(frozen=True)
class Settings:
    forms_dir: Path = Path("forms")
    max_passes: Optional[int] = None


def load_settings(environ: Optional[Mapping[str, str]] = None) -> Settings:
    """
    Build Settings from environment variables.

    Raises:
        ValueError: If FORMBUILDER_MAX_PASSES is not a positive integer
    """
    if environ is None:
        environ = os.environ

    forms_dir = Path(environ.get(FORMS_DIR_ENV) or "forms")

    max_passes = None
    raw = environ.get(MAX_PASSES_ENV)
    if raw:
        try:
            max_passes = int(raw)
        except ValueError:
            raise ValueError(f"{MAX_PASSES_ENV} must be an integer, got '{raw}'")
        if max_passes < 1:
            raise ValueError(f"{MAX_PASSES_ENV} must be at least 1, got {max_passes}")

    return Settings(forms_dir=forms_dir, max_passes=max_passes)
