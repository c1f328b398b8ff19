"""YAML front end and shape validation for attack tree documents."""

from pathlib import Path
from typing import Any, Optional
import yaml
from pydantic import ValidationError

from .errors import DocumentSyntaxError, MalformedDocument
from .schemas import CATEGORY_ORDER, Category, Document, Node


SEED_DOCUMENT = """title: New Attack Tree

facts:
- reality: Starting point
  from: []

attacks:
- initial_attack: Initial attack vector
  from:
  - reality

mitigations:
- defense: Defense mechanism
  from:
  - initial_attack

goals:
- compromise: System compromise
  from:
  - initial_attack
"""


class DocumentParser:
    """Turns the generic mapping produced by a YAML load into a Document.

    Each category list holds entries in one of three shapes:

        - reality: Starting point            # plain label
        - initial_attack: Phishing           # label with sibling keys
          from: [reality]
        - defense:                           # record
            label: MFA
            from: [initial_attack]

    Only the shape is checked here. Cross references are the compiler's job.
    """

    RESERVED_KEYS = ('from', 'backwards')

    def parse(self, data: Any) -> Document:
        if not isinstance(data, dict):
            raise MalformedDocument('', 'document must be a mapping')

        title = self._optional_string(data, 'title')
        theme = self._optional_string(data, 'theme')

        sections = {}
        for category in CATEGORY_ORDER:
            sections[category.section] = tuple(self._parse_section(data, category))

        kwargs = {'theme': theme, **sections}
        if title is not None:
            kwargs['title'] = title
        return Document(**kwargs)

    def _optional_string(self, data: dict, key: str) -> Optional[str]:
        value = data.get(key)
        if value is None:
            return None
        if not isinstance(value, str):
            raise MalformedDocument(key, 'must be a string')
        return value

    def _parse_section(self, data: dict, category: Category) -> list[Node]:
        section = category.section
        entries = data.get(section)
        if entries is None:
            return []
        if not isinstance(entries, list):
            raise MalformedDocument(section, 'must be a list')
        return [self._parse_entry(entry, category, f'{section}[{i}]') for i, entry in enumerate(entries)]

    def _parse_entry(self, entry: Any, category: Category, path: str) -> Node:
        if not isinstance(entry, dict):
            raise MalformedDocument(path, 'must be a mapping of id to label')

        id_keys = [key for key in entry if key not in self.RESERVED_KEYS]
        if not id_keys:
            raise MalformedDocument(path, 'missing id')
        if len(id_keys) > 1:
            raise MalformedDocument(path, f'declares more than one id: {", ".join(map(str, id_keys))}')
        node_id = id_keys[0]
        if not isinstance(node_id, str):
            raise MalformedDocument(path, f'id must be a string, got {node_id!r}')

        value = entry[node_id]
        siblings = {key: entry[key] for key in self.RESERVED_KEYS if key in entry}
        if isinstance(value, str):
            label = value
            attributes = siblings
        elif isinstance(value, dict):
            label = value.get('label')
            if label is None:
                raise MalformedDocument(path, 'missing label')
            if not isinstance(label, str):
                raise MalformedDocument(f'{path}.label', 'must be a string')
            attributes = {key: value[key] for key in self.RESERVED_KEYS if key in value}
            for key in siblings:
                if key in attributes:
                    raise MalformedDocument(path, f"declares '{key}' twice")
                attributes[key] = siblings[key]
        elif value is None:
            raise MalformedDocument(path, 'missing label')
        else:
            raise MalformedDocument(path, 'label must be a string')

        predecessors, edge_labels = self._parse_from(attributes.get('from'), f'{path}.from')
        backwards = self._parse_backwards(attributes.get('backwards'), predecessors, f'{path}.backwards')

        try:
            return Node(
                id=node_id,
                label=label,
                category=category,
                predecessors=tuple(predecessors),
                edge_labels=edge_labels,
                backwards=tuple(backwards),
            )
        except ValidationError as e:
            raise MalformedDocument(path, f'is invalid: {e.errors()[0]["msg"]}')

    def _parse_from(self, value: Any, path: str) -> tuple[list[str], dict[str, str]]:
        if value is None:
            return [], {}
        if isinstance(value, str):
            return [value], {}
        if not isinstance(value, list):
            raise MalformedDocument(path, 'must be a list')

        predecessors: list[str] = []
        edge_labels: dict[str, str] = {}
        for j, item in enumerate(value):
            if isinstance(item, str):
                predecessors.append(item)
            elif isinstance(item, dict) and len(item) == 1:
                ((pred_id, edge_label),) = item.items()
                if not isinstance(pred_id, str):
                    raise MalformedDocument(f'{path}[{j}]', 'must be a node id')
                if edge_label is not None and not isinstance(edge_label, str):
                    raise MalformedDocument(f'{path}[{j}]', 'edge label must be a string')
                predecessors.append(pred_id)
                if edge_label and pred_id not in edge_labels:
                    edge_labels[pred_id] = edge_label
            else:
                raise MalformedDocument(f'{path}[{j}]', 'must be a node id')
        return predecessors, edge_labels

    def _parse_backwards(self, value: Any, predecessors: list[str], path: str) -> list[str]:
        if value is None or value is False:
            return []
        if value is True:
            return list(dict.fromkeys(predecessors))
        if isinstance(value, str):
            value = [value]
        if not isinstance(value, list) or not all(isinstance(item, str) for item in value):
            raise MalformedDocument(path, 'must be true or a list of node ids')
        for item in value:
            if item not in predecessors:
                raise MalformedDocument(path, f"names '{item}' which is not listed in from")
        return list(dict.fromkeys(value))


def parse_document(data: Any) -> Document:
    """Build a Document from an already-loaded YAML structure."""
    return DocumentParser().parse(data)


def parse_text(text: str) -> Document:
    """Load YAML text and build a Document from it."""
    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise DocumentSyntaxError(f"YAML parse error: {e}")
    if data is None:
        raise MalformedDocument('', 'document is empty')
    return parse_document(data)


def load_document(path: str | Path) -> tuple[str, Document]:
    """Read an attack tree file and return its text together with the parsed Document."""
    file_path = Path(path)
    text = file_path.read_text(encoding='utf-8')
    return text, parse_text(text)
