"""
Restore pre-flight: read each expected entity type out of the archive, check it
looks like one of our backups, and ask the operator before anything destructive.
"""

import json
import zipfile
import zlib
from typing import Any, Callable, Dict, List, Optional, Tuple

from . import console
from .archive import BackupArchive
from .entities import EntityType, as_list, has_identity, has_usage
from .errors import OperatorDecline, ValidationError

# Validated collections, keyed by entity type. PSTN_USAGE maps to the single
# global record, every other type to a list of records.
ValidatedBackup = Dict[EntityType, Any]


def load_entity(archive: BackupArchive, entity_type: EntityType) -> Any:
    """Raises EntityMissing / ValidationError when the entry is unusable."""
    name = entity_type.archive_name
    try:
        text = archive.read_text(name)
    except (UnicodeDecodeError, zipfile.BadZipFile, zlib.error, OSError) as e:
        raise ValidationError(name, f"entry unreadable ({e})") from e
    try:
        data = json.loads(text)
    except ValueError as e:
        raise ValidationError(name, f"not valid JSON ({e})") from e

    if entity_type is EntityType.PSTN_USAGE:
        if isinstance(data, list):
            data = data[0] if data else None
        if not has_usage(data):
            raise ValidationError(name, "no Usage list found")
        data = dict(data, Usage=as_list(data["Usage"]))
        return data

    # A single object is written when only one record existed.
    records = as_list(data) if isinstance(data, (list, dict)) else []
    if not has_identity(records):
        raise ValidationError(name, "first record has no Identity")
    return records


def validate(archive: BackupArchive, stop_on_error: bool = False
             ) -> Tuple[ValidatedBackup, List[ValidationError]]:
    """
    Load every entity type. By default a failing type is reported and dropped
    while the remaining types are still loaded; with stop_on_error the first
    failure ends validation and nothing is returned for restore.
    """
    backup: ValidatedBackup = {}
    errors: List[ValidationError] = []

    for entity_type in EntityType:
        try:
            backup[entity_type] = load_entity(archive, entity_type)
        except ValidationError as e:
            console.err(f"Validation failed: {e}")
            errors.append(e)
            if stop_on_error:
                return {}, errors
            continue
        count = len(backup[entity_type]) if isinstance(backup[entity_type], list) else 1
        console.info(f"{entity_type.archive_name}: {count} record(s) OK")

    return backup, errors


def confirm(prompt: Callable[[str], str] = input, message: Optional[str] = None) -> None:
    """Raises OperatorDecline unless the answer is y / yes."""
    message = message or (
        "This will DELETE the existing dial plans, voice routes, voice routing policies, "
        "PSTN usages and translation rules, and clear gateway translation rules. "
        "Continue? [y/N]: "
    )
    answer = (prompt(message) or "").strip().lower()
    if answer not in ("y", "yes"):
        raise OperatorDecline("Restore cancelled by operator; no changes were made.")
