#!/usr/bin/env python
# -*- coding: utf-8 -*-

"""
Template Store for Zone Console.
Keeps named, reusable sets of bulk record lines, including a default set
that cannot be deleted.
"""

import re
import json
import yaml
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional, Tuple

from errors import PersistenceError
from local_storage import LocalStorage
from record_parser import RecordLineParser

logger = logging.getLogger(__name__)

TEMPLATE_STORAGE_KEY = "zone_console_templates"
TEMPLATE_SCHEMA_VERSION = 1
DEFAULT_TEMPLATE_ID = "default"

DEFAULT_TEMPLATE = {
    "name": "Default Template",
    "records": [
        "A|@|192.0.2.1|true",
        "CNAME|www|@|true",
        "CNAME|shop|@|true",
        "CNAME|buy|@|true",
    ],
    "proxied_default": False,
}


@dataclass
class Template:
    """A named set of bulk record lines."""

    template_id: str
    name: str
    records: List[str] = field(default_factory=list)
    proxied_default: bool = False

    @property
    def is_default(self) -> bool:
        return self.template_id == DEFAULT_TEMPLATE_ID

    def to_dict(self) -> Dict:
        return {
            "name": self.name,
            "records": list(self.records),
            "proxied_default": self.proxied_default,
        }

    @property
    def text(self) -> str:
        """Records joined the way the bulk input box holds them."""
        return "\n".join(self.records)


def slugify(name: str) -> str:
    """Derive a template id: lowercase, anything outside [a-z0-9] becomes '_'."""
    return re.sub(r'[^a-z0-9]', '_', name.lower())


class TemplateStore:
    """Persists DNS record templates keyed by slug."""

    def __init__(self, storage: LocalStorage):
        """
        Initialize the template store.

        Args:
            storage: Local key/value storage backing the collection
        """
        self.storage = storage
        # Field count only; record types are checked when a template is applied
        self._parser = RecordLineParser(strict_types=False, validate_all=True)

    def _default_template(self) -> Template:
        return Template(DEFAULT_TEMPLATE_ID, DEFAULT_TEMPLATE["name"],
                        list(DEFAULT_TEMPLATE["records"]), DEFAULT_TEMPLATE["proxied_default"])

    def _normalize(self, data) -> Tuple[Dict[str, Template], bool]:
        """
        Turn a stored blob into templates.

        Wraps the legacy bare mapping in the versioned envelope and re-seeds
        the default template if it is missing.

        Returns:
            Tuple of (templates by id, changed)
        """
        changed = False
        if isinstance(data, dict) and "schema_version" in data:
            raw_templates = data.get("templates", {})
            if data.get("schema_version") != TEMPLATE_SCHEMA_VERSION:
                changed = True
        elif isinstance(data, dict):
            logger.info("Migrating legacy template storage")
            raw_templates = data
            changed = True
        else:
            logger.error("Discarding template storage with unexpected shape")
            raw_templates = {}
            changed = True

        if not isinstance(raw_templates, dict):
            raw_templates = {}
            changed = True

        templates: Dict[str, Template] = {}
        for template_id, entry in raw_templates.items():
            if not isinstance(entry, dict) or not isinstance(entry.get("records"), list):
                logger.warning(f"Dropping malformed template '{template_id}'")
                changed = True
                continue
            templates[template_id] = Template(
                template_id,
                entry.get("name", template_id),
                [str(line) for line in entry["records"]],
                bool(entry.get("proxied_default", False)),
            )

        if DEFAULT_TEMPLATE_ID not in templates:
            templates = {DEFAULT_TEMPLATE_ID: self._default_template(), **templates}
            changed = True

        return templates, changed

    def _persist(self, templates: Dict[str, Template]) -> bool:
        """Write the collection; False on storage faults."""
        blob = json.dumps({
            "schema_version": TEMPLATE_SCHEMA_VERSION,
            "templates": {tid: t.to_dict() for tid, t in templates.items()},
        })
        try:
            self.storage.set_item(TEMPLATE_STORAGE_KEY, blob)
            return True
        except PersistenceError as e:
            logger.warning(f"Failed to save DNS templates: {e.message}")
            return False

    def _read(self) -> Dict[str, Template]:
        """Load the collection, seeding the default on first read."""
        raw = self.storage.get_item(TEMPLATE_STORAGE_KEY)
        if raw is None:
            templates = {DEFAULT_TEMPLATE_ID: self._default_template()}
            self._persist(templates)
            return templates

        try:
            data = json.loads(raw)
        except json.JSONDecodeError as e:
            logger.error(f"Failed to load DNS templates: {e}")
            return {DEFAULT_TEMPLATE_ID: self._default_template()}

        templates, changed = self._normalize(data)
        if changed:
            self._persist(templates)
        return templates

    def _malformed_lines(self, records: List[str]) -> List[str]:
        result = self._parser.parse("\n".join(records))
        return [str(r) for r in result.rejections]

    def all(self) -> List[Template]:
        """Get all templates, default first."""
        return list(self._read().values())

    def get(self, template_id: str) -> Optional[Template]:
        """Get a template by id."""
        return self._read().get(template_id)

    def get_records(self, template_id: str) -> List[str]:
        """Get the record lines of a template, or an empty list for unknown ids."""
        template = self.get(template_id)
        return list(template.records) if template else []

    def save(self, name: str, records: List[str], proxied_default: bool = False) -> Optional[str]:
        """
        Create or overwrite the template whose slug matches *name*.

        Args:
            name: Human-readable template name
            records: Bulk record lines
            proxied_default: Proxied value for lines without a fourth field

        Returns:
            The template id, or None if the template was invalid or not saved
        """
        name = (name or "").strip()
        records = [line.strip() for line in records if line.strip()]
        if not name or not records:
            logger.error("A template needs a name and at least one record")
            return None

        problems = self._malformed_lines(records)
        if problems:
            logger.error(f"Refusing to save template '{name}': {'; '.join(problems)}")
            return None

        template_id = slugify(name)
        templates = self._read()
        if template_id in templates:
            logger.info(f"Overwriting template '{template_id}'")
        templates[template_id] = Template(template_id, name, records, proxied_default)

        if not self._persist(templates):
            return None
        logger.info(f"Saved template '{name}' as '{template_id}' with {len(records)} records")
        return template_id

    def update(self, template_id: str, name: str, records: List[str],
               proxied_default: Optional[bool] = None) -> bool:
        """
        Replace an existing template in place, keeping its id.

        Returns:
            True if the template exists and the change persisted
        """
        templates = self._read()
        existing = templates.get(template_id)
        if existing is None:
            logger.error(f"Template '{template_id}' does not exist")
            return False

        name = (name or "").strip()
        records = [line.strip() for line in records if line.strip()]
        if not name or not records:
            logger.error("A template needs a name and at least one record")
            return False
        problems = self._malformed_lines(records)
        if problems:
            logger.error(f"Refusing to update template '{template_id}': {'; '.join(problems)}")
            return False

        if proxied_default is None:
            proxied_default = existing.proxied_default
        templates[template_id] = Template(template_id, name, records, proxied_default)
        return self._persist(templates)

    def delete(self, template_id: str) -> bool:
        """
        Delete a template.

        Returns:
            False for the default template, unknown ids and storage faults
        """
        if template_id == DEFAULT_TEMPLATE_ID:
            logger.error("Cannot delete the default template")
            return False

        templates = self._read()
        if template_id not in templates:
            logger.error(f"Template '{template_id}' does not exist")
            return False

        del templates[template_id]
        deleted = self._persist(templates)
        if deleted:
            logger.info(f"Deleted template '{template_id}'")
        return deleted

    def export_yaml(self, file_path: str, template_ids: Optional[List[str]] = None) -> Tuple[bool, str]:
        """
        Export templates to a YAML file.

        Args:
            file_path: Output file path
            template_ids: Templates to export, all when None

        Returns:
            Tuple of (success, message)
        """
        templates = self._read()
        selected = [t for tid, t in templates.items() if template_ids is None or tid in template_ids]
        document = {
            "exported_at": datetime.now().isoformat(),
            "templates": [
                {"id": t.template_id, **t.to_dict()} for t in selected
            ],
        }
        try:
            with open(file_path, 'w') as f:
                yaml.safe_dump(document, f, default_flow_style=False, sort_keys=False)
        except OSError as e:
            logger.error(f"Failed to export templates: {e}")
            return False, f"Failed to export templates: {e}"

        logger.info(f"Exported {len(selected)} templates to {file_path}")
        return True, f"Exported {len(selected)} templates"

    def import_yaml(self, file_path: str) -> Tuple[bool, str]:
        """
        Import templates from a YAML file written by export_yaml.

        Imported names go through save(), so slug collisions overwrite and
        malformed templates are skipped.

        Returns:
            Tuple of (success, message)
        """
        try:
            with open(file_path, 'r') as f:
                document = yaml.safe_load(f)
        except (OSError, yaml.YAMLError) as e:
            logger.error(f"Failed to read template file: {e}")
            return False, f"Failed to read template file: {e}"

        if not isinstance(document, dict) or not isinstance(document.get("templates"), list):
            return False, "Invalid template file: missing 'templates' list"

        imported = 0
        skipped = 0
        for entry in document["templates"]:
            if not isinstance(entry, dict) or not isinstance(entry.get("records"), list):
                skipped += 1
                continue
            saved_id = self.save(str(entry.get("name", "")), [str(r) for r in entry["records"]],
                                 bool(entry.get("proxied_default", False)))
            if saved_id:
                imported += 1
            else:
                skipped += 1

        message = f"Imported {imported} templates"
        if skipped:
            message += f" ({skipped} skipped)"
        logger.info(message)
        return imported > 0, message
