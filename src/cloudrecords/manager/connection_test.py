"""
Tests for ConnectionManager.

Run with: pytest src/cloudrecords/manager/connection_test.py -v
"""
import pytest

from cloudrecords.config import config
from cloudrecords.manager import ConnectionManager
from cloudrecords.record import Partition, Record
from cloudrecords.store import MemoryStore, PostgresStore


class TestConfigure:
    """Tests for ConnectionManager.configure()"""

    @pytest.mark.parametrize("identifier", [None, ""])
    def test_empty_identifier_uses_default(self, identifier):
        manager = ConnectionManager(identifier=identifier, backend="memory")

        assert manager.identifier == config.container_identifier

    def test_switching_containers_changes_database(self, manager):
        before = manager.current_database()

        manager.configure("other")

        assert manager.identifier == "other"
        assert manager.current_database() is not before

    @pytest.mark.asyncio
    async def test_returning_to_a_container_keeps_its_data(self, manager):
        saved = await manager.current_database().save(Record("Note", fields={"title": "a"}))

        manager.configure("other")
        assert await manager.current_database().fetch(saved.record_id) is None

        manager.configure("test")
        assert await manager.current_database().fetch(saved.record_id) is not None

    def test_unknown_backend_raises(self):
        with pytest.raises(ValueError, match="Unknown store backend"):
            ConnectionManager(backend="sqlite")

    def test_postgres_backend(self):
        manager = ConnectionManager(identifier="pg", backend="postgres")

        database = manager.current_database()

        assert isinstance(database, PostgresStore)
        assert database.container == "pg"


class TestSelectPartition:
    """Tests for ConnectionManager.select_partition()"""

    def test_defaults_to_public(self, manager):
        assert manager.partition is Partition.PUBLIC
        assert manager.current_database().partition is Partition.PUBLIC

    @pytest.mark.parametrize("selection,expected", [
        (Partition.PRIVATE, Partition.PRIVATE),
        ("shared", Partition.SHARED),
        ("public", Partition.PUBLIC),
    ])
    def test_select(self, manager, selection, expected):
        manager.select_partition(selection)

        database = manager.current_database()

        assert manager.partition is expected
        assert isinstance(database, MemoryStore)
        assert database.partition is expected

    def test_unknown_partition_raises(self, manager):
        with pytest.raises(ValueError, match="Unknown partition"):
            manager.select_partition("global")

        assert manager.partition is Partition.PUBLIC

    def test_partition_in_constructor(self):
        manager = ConnectionManager(partition="private", backend="memory")

        assert manager.partition is Partition.PRIVATE

    def test_each_partition_has_its_own_store(self, manager):
        stores = set()
        for partition in Partition:
            manager.select_partition(partition)
            stores.add(id(manager.current_database()))

        assert len(stores) == 3
