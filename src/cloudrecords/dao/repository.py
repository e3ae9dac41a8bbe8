import copy
import logging
from typing import AsyncIterator, Awaitable, Generic, Optional, Type, TypeVar, Union

from cloudrecords.config import config
from cloudrecords.dao.page import Page
from cloudrecords.errors import ConversionError, InvalidIdentifierError, NotFoundError, StoreError
from cloudrecords.manager import ConnectionManager
from cloudrecords.record import TRUEPREDICATE, Cursor, Predicate, Query, Record, RecordID, SavePolicy
from cloudrecords.record.model import T
from cloudrecords.store import QueryResult

R = TypeVar("R")


class DAO(Generic[T]):
    """
    Typed CRUD access for one CloudObject type.

    Every operation runs against the partition selected on the manager at
    the moment the call is made. Results come back as fresh objects built
    from what the store returned; inputs are never mutated.

    The DAO remembers the change tag of every record it has handed out, so
    objects that do not carry a change_tag of their own still update
    under IF_SERVER_RECORD_UNCHANGED against the version they were read at.

    Usage:
        notes = DAO(Note, manager)
        page = await notes.fetch(where("priority", ">", 1), page_size=20)
        while page.has_more:
            page = await notes.fetch_next(page.cursor, page_size=20)
    """

    def __init__(self, object_type: Type[T], manager: ConnectionManager):
        self.object_type = object_type
        self.manager = manager
        self._logger = logging.getLogger(f"cloudrecords.dao.{object_type.record_type}")
        self._change_tags: dict[RecordID, Optional[str]] = {}

    @property
    def record_type(self) -> str:
        return self.object_type.record_type

    # =========================================================
    # FETCH
    # =========================================================

    async def fetch(
        self,
        predicate: Predicate = TRUEPREDICATE,
        page_size: Optional[int] = None,
        sort: tuple = (),
    ) -> Page[T]:
        """
        Fetch the first page of objects matching `predicate`.

        Raises ConversionError if any record on the page cannot be
        converted; no partial page is returned.
        """
        page_size = self._page_size(page_size)
        query = Query(self.record_type, predicate, tuple(sort))
        database = self.manager.current_database()
        self._logger.debug("fetch page_size=%d predicate=%r", page_size, predicate)
        result = await self._submit("fetch", database.run_query(query, page_size))
        return self._to_page("fetch", result)

    async def fetch_next(self, cursor: Cursor, page_size: Optional[int] = None) -> Page[T]:
        """Fetch the page following `cursor`, which must come from a query for this type."""
        page_size = self._page_size(page_size)
        if cursor.query.record_type != self.record_type:
            raise ValueError(
                f"Cursor belongs to a {cursor.query.record_type} query, not {self.record_type}"
            )
        database = self.manager.current_database()
        self._logger.debug("fetch_next page_size=%d position=%d", page_size, cursor.position)
        result = await self._submit(
            "fetch_next", database.run_query(cursor.query, page_size, cursor=cursor)
        )
        return self._to_page("fetch_next", result)

    async def fetch_all(
        self,
        predicate: Predicate = TRUEPREDICATE,
        page_size: Optional[int] = None,
        sort: tuple = (),
    ) -> AsyncIterator[T]:
        """Yield every matching object, requesting pages in cursor order."""
        page = await self.fetch(predicate, page_size, sort)
        while True:
            for item in page:
                yield item
            if page.cursor is None:
                return
            page = await self.fetch_next(page.cursor, page_size)

    async def fetch_one(self, record_id: Union[RecordID, str]) -> T:
        record_id = self._record_id("fetch_one", record_id)
        database = self.manager.current_database()
        self._logger.debug("fetch_one %s", record_id)
        record = await self._submit("fetch_one", database.fetch(record_id))
        if record is None:
            raise NotFoundError("fetch_one", record_id)
        return self._convert("fetch_one", record)

    # =========================================================
    # WRITE
    # =========================================================

    async def save(self, obj: T) -> T:
        """
        Create the object's record. Returns the object rebuilt from the
        stored record, which carries the store-assigned id.
        """
        record = obj.to_record()
        database = self.manager.current_database()
        self._logger.debug("save %s", record.record_id or "<new>")
        saved = await self._submit("save", database.save(record))
        if saved is None:
            raise NotFoundError("save", record.record_id)
        return self._convert("save", saved)

    async def update(
        self,
        record_id: Union[RecordID, str],
        obj: T,
        policy: SavePolicy = SavePolicy.ALL_KEYS,
    ) -> T:
        """
        Write `obj` over the record `record_id` using `policy` to resolve
        concurrent changes. The caller's object is left untouched.
        """
        record_id = self._record_id("update", record_id)
        policy = SavePolicy(policy)
        target = copy.copy(obj)
        target.record_id = record_id
        record = self._with_change_tag(target.to_record())

        database = self.manager.current_database()
        self._logger.debug("update %s policy=%s", record_id, policy.value)
        saved = await self._submit("update", database.modify([record], policy))
        if not saved:
            raise NotFoundError("update", record_id)
        return self._convert("update", saved[0])

    async def delete(self, obj: T) -> RecordID:
        """Delete the object's record and return its id."""
        if obj.record_id is None:
            raise InvalidIdentifierError("delete", self.record_type)
        database = self.manager.current_database()
        self._logger.debug("delete %s", obj.record_id)
        deleted = await self._submit("delete", database.delete(obj.record_id))
        self._change_tags.pop(deleted, None)
        return deleted

    # =========================================================
    # HELPERS
    # =========================================================

    async def _submit(self, operation: str, request: Awaitable[R]) -> R:
        try:
            return await request
        except Exception as e:
            raise StoreError(operation, e) from e

    def _convert(self, operation: str, record: Record) -> T:
        try:
            obj = self.object_type.from_record(record)
        except (ConversionError, KeyError, TypeError, ValueError) as e:
            raise ConversionError(self.record_type, operation, reason=str(e)) from e
        if record.record_id is not None:
            self._change_tags[record.record_id] = record.change_tag
        return obj

    def _with_change_tag(self, record: Record) -> Record:
        """Fill in the last change tag seen for the record when the object carried none."""
        if record.change_tag is None and record.record_id is not None:
            record.change_tag = self._change_tags.get(record.record_id)
        return record

    def _to_page(self, operation: str, result: QueryResult) -> Page[T]:
        items = [self._convert(operation, record) for record in result.records]
        self._logger.debug(
            "%s returned %d objects, more=%s", operation, len(items), result.cursor is not None
        )
        return Page(items=items, cursor=result.cursor)

    @staticmethod
    def _page_size(page_size: Optional[int]) -> int:
        if page_size is None:
            page_size = config.default_page_size
        if not isinstance(page_size, int) or isinstance(page_size, bool) or page_size < 1:
            raise ValueError(f"page_size must be a positive integer, got {page_size!r}")
        return page_size

    def _record_id(self, operation: str, record_id: Union[RecordID, str, None]) -> RecordID:
        if isinstance(record_id, RecordID):
            return record_id
        if isinstance(record_id, str) and record_id:
            return RecordID(record_id)
        raise InvalidIdentifierError(operation, self.record_type)
