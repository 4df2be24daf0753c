"""Load entity records from JSON card data.

Accepted shapes:
- a list of entity objects
- an object with an "entities" list (other keys are ignored)

Validation is all-or-nothing: one bad record (including a guard outside the
expression grammar) fails the load with a pydantic ValidationError, before
any snapshot is built from it.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping, Sequence
from pathlib import Path
from typing import Any

from pydantic import TypeAdapter

from lore_sense.models.entity import Entity

logger = logging.getLogger(__name__)

_ENTITY_LIST = TypeAdapter(list[Entity])


def _records(data: Any) -> Any:
    if isinstance(data, Mapping) and "entities" in data:
        return data["entities"]
    return data


def load_entities(source: str | Path | Sequence[Any] | Mapping[str, Any]) -> list[Entity]:
    """Validate entity records from a JSON file path or already-parsed data.

    Args:
        source: Path to a UTF-8 JSON file, or the parsed JSON value.

    Returns:
        Entities in file order.

    Raises:
        pydantic.ValidationError: If any record is invalid.
        OSError / json.JSONDecodeError: If the file cannot be read or parsed.
    """
    if isinstance(source, (str, Path)):
        path = Path(source)
        data = json.loads(path.read_text(encoding="utf-8"))
        origin = str(path)
    else:
        data = source
        origin = "<data>"

    entities = _ENTITY_LIST.validate_python(_records(data))
    logger.info("Loaded %d entities from %s", len(entities), origin)
    return entities
