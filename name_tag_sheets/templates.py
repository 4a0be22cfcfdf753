"""
Reusable column mapping templates.
"""

# Standard Library
import dataclasses
import datetime
import json
import pathlib
from typing import Protocol

# local repo modules
import name_tag_sheets as nts
import name_tag_sheets.config


ColumnMapping = nts.config.ColumnMapping


@dataclasses.dataclass
class MappingTemplate:
	name: str
	mapping: ColumnMapping
	has_headers: bool
	created_at: str

	#============================================
	@classmethod
	def create(cls, name: str, mapping: ColumnMapping, has_headers: bool) -> "MappingTemplate":
		"""
		Build a template stamped with the current UTC time.

		Args:
			name: Template name.
			mapping: Column mapping.
			has_headers: Header flag saved with the mapping.

		Returns:
			MappingTemplate.
		"""
		created_at = datetime.datetime.now(datetime.timezone.utc).isoformat()
		return cls(name=name, mapping=mapping, has_headers=has_headers, created_at=created_at)

	def to_dict(self) -> dict:
		return {
			"name": self.name,
			"mapping": self.mapping.to_dict(),
			"hasHeaders": self.has_headers,
			"createdAt": self.created_at,
		}

	@classmethod
	def from_dict(cls, data: dict) -> "MappingTemplate":
		return cls(
			name=data["name"],
			mapping=ColumnMapping.from_dict(data.get("mapping")),
			has_headers=bool(data.get("hasHeaders", False)),
			created_at=data.get("createdAt", ""),
		)


class MappingStore(Protocol):
	def save(self, name: str, template: MappingTemplate) -> None:
		...

	def load(self, name: str) -> MappingTemplate | None:
		...

	def list(self) -> list[str]:
		...

	def delete(self, name: str) -> None:
		...


class MemoryMappingStore:
	"""
	Keeps templates in a dict for the lifetime of the object.
	"""

	def __init__(self) -> None:
		self._templates: dict[str, MappingTemplate] = {}

	def save(self, name: str, template: MappingTemplate) -> None:
		self._templates[name] = template

	def load(self, name: str) -> MappingTemplate | None:
		return self._templates.get(name)

	def list(self) -> list[str]:
		return sorted(self._templates)

	def delete(self, name: str) -> None:
		self._templates.pop(name, None)


class JsonFileMappingStore:
	"""
	Stores templates in one JSON file keyed by template name.
	"""

	def __init__(self, path: pathlib.Path) -> None:
		self.path = pathlib.Path(path)

	#============================================
	def _read(self) -> dict[str, dict]:
		"""
		Read the raw template table.

		Returns:
			Dict of template dicts by name, empty when the file is missing.
		"""
		if not self.path.exists():
			return {}
		text = self.path.read_text(encoding="utf-8")
		if not text.strip():
			return {}
		return json.loads(text)

	def _write(self, data: dict[str, dict]) -> None:
		self.path.parent.mkdir(parents=True, exist_ok=True)
		text = json.dumps(data, indent=2, sort_keys=True)
		self.path.write_text(text, encoding="utf-8")

	def save(self, name: str, template: MappingTemplate) -> None:
		data = self._read()
		data[name] = template.to_dict()
		self._write(data)

	def load(self, name: str) -> MappingTemplate | None:
		entry = self._read().get(name)
		if entry is None:
			return None
		return MappingTemplate.from_dict(entry)

	def list(self) -> list[str]:
		return sorted(self._read())

	def delete(self, name: str) -> None:
		data = self._read()
		if name in data:
			del data[name]
			self._write(data)
