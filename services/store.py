"""JSON-file store for composer entities.

Each table is kept in memory as a dict keyed by id and written back as one
JSON document. ``transaction()`` makes a group of writes all-or-nothing: the
outermost scope snapshots the tables, writes the file once on success and
restores the snapshot if anything raises.
"""

import copy
import json
import logging
import os
import tempfile
from contextlib import contextmanager

import config
from errors import NotFoundError, StorageError
from models import Account, Draft, MediaAttachment, OwnerKind, Post, SplittingConfiguration
from platforms import PlatformLimit, PlatformRegistry, default_limits

logger = logging.getLogger(__name__)

TABLES = {
    "platforms": PlatformLimit,
    "accounts": Account,
    "drafts": Draft,
    "posts": Post,
    "media": MediaAttachment,
    "splitting_configurations": SplittingConfiguration,
}


def _row_key(table, row):
    return row.platform_id if table == "platforms" else row.id


class Store:
    def __init__(self, path=None):
        self.path = path or config.STORE_FILE
        self._tables = {name: {} for name in TABLES}
        self._next_account_id = 1
        self._depth = 0
        self._snapshot = None
        self._load()

    # --- file I/O ---

    def _load(self):
        if not os.path.exists(self.path):
            return
        try:
            with open(self.path, "r") as f:
                document = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise StorageError(f"Failed to read store {self.path}: {e}") from e
        for name, model in TABLES.items():
            rows = document.get(name, [])
            table = {}
            for data in rows:
                row = model.from_dict(data)
                table[_row_key(name, row)] = row
            self._tables[name] = table
        self._next_account_id = document.get("nextAccountId", 1)
        for attachment in self._tables["media"].values():
            owner = self._owner_of(attachment)
            if owner is not None:
                owner.media.append(attachment)
        logger.debug("Loaded store %s", self.path)

    def _owner_of(self, attachment):
        if attachment.owner is None:
            return None
        name = "drafts" if attachment.owner.kind == OwnerKind.DRAFT else "posts"
        return self._tables[name].get(attachment.owner.id)

    def _document(self):
        document = {name: [row.to_dict() for row in table.values()] for name, table in self._tables.items()}
        document["nextAccountId"] = self._next_account_id
        return document

    def _write(self):
        directory = os.path.dirname(os.path.abspath(self.path))
        try:
            os.makedirs(directory, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(dir=directory, prefix=".store-", suffix=".json")
            with os.fdopen(fd, "w") as f:
                json.dump(self._document(), f, indent=2)
            os.replace(tmp_path, self.path)
        except OSError as e:
            raise StorageError(f"Failed to write store {self.path}: {e}") from e

    # --- transactions ---

    @contextmanager
    def transaction(self):
        outermost = self._depth == 0
        if outermost:
            self._snapshot = (copy.deepcopy(self._tables), self._next_account_id)
        self._depth += 1
        try:
            yield self
            if outermost:
                self._write()
        except BaseException:
            if outermost:
                self._tables, self._next_account_id = self._snapshot
                logger.warning("Rolled back store transaction on %s", self.path)
            raise
        finally:
            self._depth -= 1
            if outermost:
                self._snapshot = None

    # --- table access ---

    def table(self, name):
        return self._tables[name]

    def get(self, name, key):
        try:
            return self._tables[name][key]
        except KeyError:
            raise NotFoundError(f"No {name} row with id {key!r}") from None

    def find(self, name, key):
        return self._tables[name].get(key)

    def all(self, name):
        return list(self._tables[name].values())

    def put(self, name, row):
        with self.transaction():
            if name == "accounts" and row.id is None:
                row.id = self._next_account_id
                self._next_account_id += 1
            self._tables[name][_row_key(name, row)] = row
        return row

    def delete(self, name, key):
        with self.transaction():
            return self._tables[name].pop(key, None)

    @property
    def posts(self):
        """Arena of posts keyed by id, for thread queries."""
        return self._tables["posts"]

    def media_for(self, owner):
        return [m for m in self._tables["media"].values() if m.owner == owner]

    # --- platform registry ---

    def seed_platforms(self, limits=None):
        """Add default (or given) platforms that are not stored yet."""
        registry = self.registry()
        added = registry.reseed(limits if limits is not None else default_limits())
        if added:
            with self.transaction():
                for limit in registry.limits():
                    if limit.platform_id in added:
                        self._tables["platforms"][limit.platform_id] = limit
            logger.info("Seeded platforms: %s", ", ".join(added))
        return added

    def registry(self):
        return PlatformRegistry(list(self._tables["platforms"].values()))
