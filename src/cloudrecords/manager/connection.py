import logging
from typing import Optional, Union

from cloudrecords.config import STORE_BACKENDS, config
from cloudrecords.record import Partition
from cloudrecords.store import Container, RecordStore, open_container

logger = logging.getLogger(__name__)

DEFAULT_CONTAINER = "default"


class ConnectionManager:
    """
    Owns the configured container and the selected partition.

    Construct one and hand it to every DAO that should share it. The
    selected partition is read by each DAO call as it is issued, so switch
    partitions at configuration time rather than between in-flight requests.
    """

    def __init__(
        self,
        identifier: Optional[str] = None,
        partition: Union[Partition, str] = Partition.PUBLIC,
        backend: Optional[str] = None,
    ):
        self.backend = (backend or config.store_backend).lower()
        if self.backend not in STORE_BACKENDS:
            raise ValueError(f"Unknown store backend {self.backend!r}")
        self._containers: dict[str, Container] = {}
        self._container: Container = None
        self._partition = Partition.PUBLIC
        self.select_partition(partition)
        self.configure(identifier)

    @property
    def identifier(self) -> str:
        return self._container.identifier

    @property
    def partition(self) -> Partition:
        return self._partition

    def configure(self, identifier: Optional[str] = None) -> None:
        """
        Point the manager at a container. An empty identifier selects the
        configured default container.
        """
        identifier = identifier or config.container_identifier or DEFAULT_CONTAINER
        container = self._containers.get(identifier)
        if container is None:
            container = open_container(identifier, self.backend)
            self._containers[identifier] = container
        self._container = container
        logger.info("Using %s container %r", self.backend, identifier)

    def select_partition(self, partition: Union[Partition, str]) -> None:
        try:
            self._partition = Partition(partition)
        except ValueError:
            valid = ", ".join(p.value for p in Partition)
            raise ValueError(f"Unknown partition {partition!r}, expected one of {valid}") from None
        logger.debug("Selected %s partition", self._partition.value)

    def current_database(self) -> RecordStore:
        """The store for the selected partition of the configured container."""
        return self._container.database(self._partition)
