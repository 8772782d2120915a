"""
Zip packaging of backup records: one `{Name}.txt` entry (UTF-8 JSON) per
entity type or tenant query.
"""

import io
import os
import tempfile
import zipfile
from datetime import date
from typing import List, Mapping, Optional

from . import console
from .entities import entry_name
from .errors import ArchiveOpenError, EntityMissing


def backup_filename(prefix: str, when: date, tenant_display_name: Optional[str] = None) -> str:
    """{Prefix}Backup_{yyyy-MM-dd}[ {TenantDisplayName}].zip"""
    name = f"{prefix}Backup_{when:%Y-%m-%d}"
    if tenant_display_name:
        name += f" {tenant_display_name}"
    return name + ".zip"


def pack(records: Mapping[str, str], destination: str) -> str:
    """
    Write each record to `{name}.txt` in a private staging directory, zip them
    into `destination` (replacing any existing file) and remove the text files
    again.

    OSError propagates when a source file or the destination cannot be written.
    """
    with tempfile.TemporaryDirectory(prefix="evbackup-", ignore_cleanup_errors=True) as workdir:
        sources: List[str] = []
        try:
            for name, text in records.items():
                path = os.path.join(workdir, entry_name(name))
                with open(path, "w", encoding="utf-8") as f:
                    f.write(text)
                sources.append(path)

            with zipfile.ZipFile(destination, "w", compression=zipfile.ZIP_DEFLATED) as zf:
                for path in sources:
                    zf.write(path, arcname=os.path.basename(path))
        finally:
            for path in sources:
                try:
                    os.remove(path)
                except OSError as e:
                    console.warn(f"Could not remove {path}: {e}")

    return destination


class BackupArchive:
    """Read-side handle over a backup zip. Use as a context manager."""

    def __init__(self, zf: zipfile.ZipFile, path: str):
        self._zf = zf
        self.path = path

    def names(self) -> List[str]:
        return self._zf.namelist()

    def has(self, name: str) -> bool:
        try:
            self._zf.getinfo(entry_name(name))
        except KeyError:
            return False
        return True

    def read_text(self, name: str) -> str:
        if not self.has(name):
            raise EntityMissing(name)
        with self._zf.open(entry_name(name)) as raw:
            with io.TextIOWrapper(raw, encoding="utf-8-sig") as f:
                return f.read()

    def close(self) -> None:
        self._zf.close()

    def __enter__(self) -> "BackupArchive":
        return self

    def __exit__(self, *exc) -> None:
        self.close()


def unpack(path: str) -> BackupArchive:
    try:
        zf = zipfile.ZipFile(path, "r")
    except (zipfile.BadZipFile, OSError) as e:
        raise ArchiveOpenError(f"{path} is not a readable zip archive: {e}") from e
    return BackupArchive(zf, path)

