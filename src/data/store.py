import json
import logging
import threading
from pathlib import Path
from typing import Dict


class KVStore:
    """
    String key-value store persisted as a single JSON object.

    Values are opaque strings (callers serialize their own documents). Every
    operation re-reads the file, so several processes may share one store;
    concurrent read-modify-write sequences are last-writer-wins.
    """

    def __init__(self, path: str):
        self.path = Path(path)
        self._lock = threading.Lock()

    def _load(self) -> Dict[str, str]:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except Exception:
            logging.getLogger(__name__).warning(
                "Failed to load store file %s; using empty store",
                self.path,
                exc_info=True,
            )
            return {}
        if not isinstance(data, dict):
            return {}
        return {str(k): v for k, v in data.items() if isinstance(v, str)}

    def _save(self, data: Dict[str, str]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        raw = json.dumps(dict(sorted(data.items())), ensure_ascii=False, indent=2) + "\n"
        tmp_path.write_text(raw, encoding="utf-8")
        tmp_path.replace(self.path)

    def get(self, key: str) -> str | None:
        with self._lock:
            return self._load().get(key)

    def put(self, key: str, value: str) -> None:
        with self._lock:
            data = self._load()
            data[key] = value
            self._save(data)

    def delete(self, key: str) -> None:
        with self._lock:
            data = self._load()
            if key in data:
                del data[key]
                self._save(data)

    def keys(self, prefix: str = "") -> list[str]:
        with self._lock:
            return sorted(k for k in self._load() if k.startswith(prefix))


def _get_json(store: KVStore, key: str) -> Dict | None:
    raw = store.get(key)
    if raw is None:
        return None
    try:
        data = json.loads(raw)
    except ValueError:
        logging.getLogger(__name__).warning("Corrupt JSON under key %s; ignoring", key)
        return None
    return data if isinstance(data, dict) else None


def _put_json(store: KVStore, key: str, value: Dict) -> None:
    store.put(key, json.dumps(value, ensure_ascii=False))
