import hashlib
import re
from pathlib import Path
from typing import Protocol

from loguru import logger


class StorageProtocol(Protocol):
    """Durable key/value storage for serialized client state."""

    def get_item(self, name: str) -> str | None:
        ...

    def set_item(self, name: str, value: str) -> None:
        ...

    def remove_item(self, name: str) -> None:
        ...


class MemoryStorage:
    """Process-local storage. Survives store re-creation but not a restart."""

    def __init__(self) -> None:
        self.items: dict[str, str] = {}

    def get_item(self, name: str) -> str | None:
        return self.items.get(name)

    def set_item(self, name: str, value: str) -> None:
        self.items[name] = value

    def remove_item(self, name: str) -> None:
        self.items.pop(name, None)


class JsonFileStorage:
    """One ``<name>.json`` file per bucket under ``directory``."""

    def __init__(self, directory: Path) -> None:
        self._directory = Path(directory)

    def _path(self, name: str) -> Path:
        return self._directory / f"{name}.json"

    def get_item(self, name: str) -> str | None:
        path = self._path(name)
        try:
            return path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except OSError as exc:
            logger.warning("Could not read {}: {}", path, exc)
            return None

    def set_item(self, name: str, value: str) -> None:
        self._directory.mkdir(parents=True, exist_ok=True)
        path = self._path(name)
        # The bucket file is only ever replaced whole.
        tmp = path.with_suffix(".json.tmp")
        tmp.write_text(value, encoding="utf-8")
        tmp.replace(path)

    def remove_item(self, name: str) -> None:
        self._path(name).unlink(missing_ok=True)


def user_storage_dir(base: Path, user_id: str) -> Path:
    """Per-user directory under ``base``; the id is reduced to a safe single path segment.

    Ids that had to be rewritten get a hash suffix so two different ids never
    share a directory.
    """
    safe = re.sub(r"[^\w-]", "_", user_id)
    if safe != user_id or not safe:
        digest = hashlib.sha256(user_id.encode("utf-8")).hexdigest()[:12]
        safe = f"{safe}-{digest}"
    return Path(base) / safe
