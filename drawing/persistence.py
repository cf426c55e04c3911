"""
FloorSketch - Persistence Boundary

Speichert Snapshot-Blobs unter einem Schlüssel. Fehler (Dateisystem, Quota,
ungültiger Schlüssel) werden geloggt und als False/None gemeldet, nie
geworfen: ein fehlgeschlagenes Speichern darf die Zeichen-Session nicht
beenden.
"""

import os
import re
from pathlib import Path
from typing import Dict, Optional, Protocol, Union

from loguru import logger

_CONFIG_DIR = Path(os.path.expanduser("~")) / ".floorsketch"
DEFAULT_PLAN_DIR = _CONFIG_DIR / "plans"

_KEY_PATTERN = re.compile(r"^[A-Za-z0-9_\-][A-Za-z0-9_.\-]*$")


def is_valid_key(key: str) -> bool:
    """Schlüssel werden zu Dateinamen: keine Pfadtrenner, kein führender Punkt."""
    return isinstance(key, str) and bool(_KEY_PATTERN.match(key))


class SceneStore(Protocol):
    def save(self, key: str, blob: str) -> bool: ...

    def load(self, key: str) -> Optional[str]: ...

    def clear(self, key: str) -> bool: ...


class JsonFileStore:
    """Ein JSON-Blob pro Plan unter ``<root>/<key>.json``."""

    SUFFIX = ".json"

    def __init__(self, root: Union[str, Path] = None):
        self.root = Path(root) if root is not None else DEFAULT_PLAN_DIR

    def path_for(self, key: str) -> Path:
        return self.root / f"{key}{self.SUFFIX}"

    def save(self, key: str, blob: str) -> bool:
        if not is_valid_key(key):
            logger.warning(f"[Store] Ungültiger Schlüssel: {key!r}")
            return False
        path = self.path_for(key)
        tmp = path.with_suffix(path.suffix + ".tmp")
        try:
            self.root.mkdir(parents=True, exist_ok=True)
            tmp.write_text(blob, encoding="utf-8")
            os.replace(tmp, path)
        except OSError as e:
            logger.warning(f"[Store] Speichern von '{key}' fehlgeschlagen: {e}")
            return False
        logger.info(f"[Store] '{key}' gespeichert ({len(blob)} bytes) -> {path}")
        return True

    def load(self, key: str) -> Optional[str]:
        if not is_valid_key(key):
            logger.warning(f"[Store] Ungültiger Schlüssel: {key!r}")
            return None
        path = self.path_for(key)
        try:
            return path.read_text(encoding="utf-8")
        except FileNotFoundError:
            logger.info(f"[Store] '{key}' nicht vorhanden")
            return None
        except (OSError, UnicodeDecodeError) as e:
            logger.warning(f"[Store] Laden von '{key}' fehlgeschlagen: {e}")
            return None

    def clear(self, key: str) -> bool:
        if not is_valid_key(key):
            logger.warning(f"[Store] Ungültiger Schlüssel: {key!r}")
            return False
        try:
            self.path_for(key).unlink()
        except FileNotFoundError:
            return False
        except OSError as e:
            logger.warning(f"[Store] Löschen von '{key}' fehlgeschlagen: {e}")
            return False
        logger.debug(f"[Store] '{key}' gelöscht")
        return True

    def keys(self):
        if not self.root.is_dir():
            return []
        return sorted(p.stem for p in self.root.glob(f"*{self.SUFFIX}"))


class MemoryStore:
    """
    Flüchtiger Store, z.B. für Tests.

    quota_bytes simuliert ein begrenztes Browser-/Geräte-Kontingent
    (UTF-8-Größe aller Blobs zusammen).
    """

    def __init__(self, quota_bytes: Optional[int] = None):
        self.quota_bytes = quota_bytes
        self._data: Dict[str, str] = {}

    @property
    def used_bytes(self) -> int:
        return sum(len(blob.encode("utf-8")) for blob in self._data.values())

    def save(self, key: str, blob: str) -> bool:
        if not is_valid_key(key):
            logger.warning(f"[Store] Ungültiger Schlüssel: {key!r}")
            return False
        if self.quota_bytes is not None:
            others = self.used_bytes - len(self._data.get(key, "").encode("utf-8"))
            needed = others + len(blob.encode("utf-8"))
            if needed > self.quota_bytes:
                logger.warning(f"[Store] Kontingent überschritten: {needed} > {self.quota_bytes} bytes")
                return False
        self._data[key] = blob
        return True

    def load(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def clear(self, key: str) -> bool:
        return self._data.pop(key, None) is not None

    def keys(self):
        return sorted(self._data)
