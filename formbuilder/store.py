"""
YAML file store for form schemas.

Each form is kept in its own file, <forms_dir>/<form id>.yaml.
"""

import logging
import os
from pathlib import Path
from typing import List, Optional, Union

import yaml

from formbuilder.models import FormSchema, SchemaError

logger = logging.getLogger(__name__)


class StoreError(Exception):
    """Raised when a stored form cannot be read or written."""

    pass


class FormStore:
    """Directory of form schema YAML files."""

    def __init__(self, directory: Union[str, Path]):
        self.directory = Path(directory)

    def path_for(self, form_id: str) -> Path:
        if not form_id or "/" in form_id or "\\" in form_id or form_id in (".", ".."):
            raise StoreError(f"Invalid form id '{form_id}'")
        return self.directory / f"{form_id}.yaml"

    def save(self, form: FormSchema) -> Path:
        """
        Write a form, replacing any stored form with the same id.

        The form is written to a temporary file next to the target and moved
        into place with os.replace, so a failed save leaves the old file intact.
        """
        path = self.path_for(form.id)
        try:
            text = yaml.safe_dump(form.to_dict(), sort_keys=False, allow_unicode=True)
        except yaml.YAMLError as e:
            raise StoreError(f"{path}: Failed to serialize form - {e}") from e

        tmp = path.with_suffix(".yaml.tmp")
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            with open(tmp, "w", encoding="utf-8") as f:
                f.write(text)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp, path)
        except OSError as e:
            tmp.unlink(missing_ok=True)
            raise StoreError(f"{path}: Failed to save form - {e}") from e
        return path

    def load_file(self, path: Path) -> FormSchema:
        """
        Read one form file.

        Raises:
            StoreError: If the file cannot be read or does not hold a valid form
        """
        try:
            with open(path, encoding="utf-8") as f:
                data = yaml.safe_load(f)
        except OSError as e:
            raise StoreError(f"{path}: Failed to read form - {e}") from e
        except yaml.YAMLError as e:
            raise StoreError(f"{path}: Invalid YAML syntax - {e}") from e
        if data is None:
            raise StoreError(f"{path}: File is empty")
        try:
            return FormSchema.from_dict(data)
        except SchemaError as e:
            raise StoreError(f"{path}: {e}") from e

    def get(self, form_id: str) -> Optional[FormSchema]:
        """Return the stored form, or None if there is none with this id."""
        path = self.path_for(form_id)
        if not path.exists():
            return None
        return self.load_file(path)

    def list_forms(self) -> List[FormSchema]:
        """All readable forms, oldest first. Unreadable files are skipped with a warning."""
        if not self.directory.is_dir():
            return []
        forms = []
        for path in sorted(self.directory.glob("*.yaml")):
            try:
                forms.append(self.load_file(path))
            except StoreError as e:
                logger.warning("Skipping unreadable form file: %s", e)
        return sorted(forms, key=lambda form: form.created_at)

    def delete(self, form_id: str) -> bool:
        """Remove a stored form. Returns False if it did not exist."""
        path = self.path_for(form_id)
        if not path.exists():
            return False
        try:
            path.unlink()
        except OSError as e:
            raise StoreError(f"{path}: Failed to delete form - {e}") from e
        return True
