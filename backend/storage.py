# backend/storage.py
import json
import logging
import os
import tempfile
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Dict, Iterator, List, Type

from pydantic import ValidationError

from config import settings
from models.base import Record
from models.cart import Cart
from models.order import Order
from models.product import Product
from models.users import User
from utils.errors import StorageError, StoreTimeoutError

logger = logging.getLogger(__name__)

# Collection name -> record model. One JSON array file per collection.
COLLECTIONS: Dict[str, Type[Record]] = {
    "products": Product,
    "users": User,
    "carts": Cart,
    "orders": Order,
}


class JsonStore:
    """Whole-file JSON collections behind a single store-wide lock.

    Reads load the entire array, writes replace the entire file. A write goes to
    a temp file in the same directory and is moved into place with
    ``os.replace``, so readers see either the old file or the new one.
    """

    def __init__(self, data_dir, lock_timeout: float = 5.0):
        self.data_dir = Path(data_dir)
        self.lock_timeout = lock_timeout
        self._lock = threading.RLock()

    def path_for(self, collection: str) -> Path:
        if collection not in COLLECTIONS:
            raise ValueError(f"Unknown collection: {collection}")
        return self.data_dir / f"{collection}.json"

    def exists(self, collection: str) -> bool:
        return self.path_for(collection).exists()

    def load(self, collection: str) -> List[dict]:
        path = self.path_for(collection)
        if not path.exists():
            return []
        try:
            with open(path, "r", encoding="utf-8") as fh:
                data = json.load(fh)
        except json.JSONDecodeError as e:
            logger.error(f"Corrupt data file {path}: {e}")
            raise StorageError(f"Data file {path.name} is corrupt")
        except OSError as e:
            logger.error(f"Cannot read data file {path}: {e}")
            raise StorageError(f"Cannot read data file {path.name}")
        if not isinstance(data, list):
            raise StorageError(f"Data file {path.name} does not hold a JSON array")
        return data

    def save(self, collection: str, records: List[dict]) -> None:
        with self._locked():
            tmp = self._write_temp(collection, records)
            self._replace(tmp, collection)

    @contextmanager
    def transaction(self) -> Iterator["StoreTransaction"]:
        """Hold the store lock for a whole load/mutate/save cycle.

        Staged writes are flushed only when the block exits cleanly; an
        exception inside the block discards them.
        """
        with self._locked():
            tx = StoreTransaction(self)
            yield tx
            tx.commit()

    @contextmanager
    def _locked(self):
        if not self._lock.acquire(timeout=self.lock_timeout):
            logger.warning(f"Store lock not acquired within {self.lock_timeout}s")
            raise StoreTimeoutError("Store is busy, please try again")
        try:
            yield
        finally:
            self._lock.release()

    def _write_temp(self, collection: str, records: List[dict]) -> Path:
        path = self.path_for(collection)
        self.data_dir.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(prefix=f".{collection}.", suffix=".tmp", dir=self.data_dir)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                json.dump(records, fh, indent=2)
                fh.flush()
                os.fsync(fh.fileno())
        except OSError as e:
            Path(tmp_name).unlink(missing_ok=True)
            logger.error(f"Failed to write {path}: {e}")
            raise StorageError(f"Failed to write data file {path.name}")
        return Path(tmp_name)

    def _replace(self, tmp: Path, collection: str) -> None:
        try:
            os.replace(tmp, self.path_for(collection))
        except OSError as e:
            tmp.unlink(missing_ok=True)
            logger.error(f"Failed to replace {collection}: {e}")
            raise StorageError(f"Failed to write data file {collection}.json")


class StoreTransaction:
    def __init__(self, store: JsonStore):
        self.store = store
        self._cache: Dict[str, list] = {}
        self._staged: Dict[str, List[dict]] = {}

    def read(self, collection: str) -> list:
        """Typed records of a collection; each call returns fresh objects."""
        if collection not in self._cache:
            self._cache[collection] = self.store.load(collection)
        model = COLLECTIONS[collection]
        try:
            return [model.model_validate(r) for r in self._cache[collection]]
        except ValidationError as e:
            logger.error(f"Malformed record in {collection}: {e}")
            raise StorageError(f"Data file {collection}.json holds a malformed record")

    def write(self, collection: str, records: list) -> None:
        raw = [r.to_json() for r in records]
        self._cache[collection] = raw
        self._staged[collection] = raw

    def commit(self) -> None:
        # All temp files are written before any of them is moved into place,
        # which keeps the window for a half-applied scan down to the renames.
        staged = []
        try:
            for collection, records in self._staged.items():
                staged.append((collection, self.store._write_temp(collection, records)))
        except StorageError:
            for _, tmp in staged:
                tmp.unlink(missing_ok=True)
            raise
        for collection, tmp in staged:
            self.store._replace(tmp, collection)
        self._staged.clear()


SEED_DATA: Dict[str, list] = {
    "products": [
        {"id": "1", "name": "Milk", "price": 2.99, "rfidTag": "A1B2C3D4", "quantity": 20},
        {"id": "2", "name": "Bread", "price": 1.99, "rfidTag": "E5F6G7H8", "quantity": 15},
        {"id": "3", "name": "Eggs", "price": 3.49, "rfidTag": "I9J0K1L2", "quantity": 30},
        {"id": "4", "name": "Cheese", "price": 4.99, "rfidTag": "M3N4O5P6", "quantity": 10},
        {"id": "5", "name": "Apples", "price": 0.99, "rfidTag": "Q7R8S9T0", "quantity": 50},
    ],
    "users": [
        {"id": "1", "username": "admin", "password": "admin123", "role": "admin"},
        {"id": "2", "username": "customer", "password": "customer123", "role": "customer"},
    ],
    "carts": [],
    "orders": [],
}


def init_store(store: JsonStore) -> None:
    # Create any missing data file with its seed content; existing files are left alone
    store.data_dir.mkdir(parents=True, exist_ok=True)
    for collection, initial in SEED_DATA.items():
        if not store.exists(collection):
            logger.info(f"Creating {collection}.json")
            store.save(collection, initial)


store = JsonStore(settings.DATA_DIR, lock_timeout=settings.STORE_LOCK_TIMEOUT_SECONDS)

def get_store():
    return store
