"""
Data probes queried by the scrape tick.

A probe reaches an external data source and returns raw values. A failure
of the data source is surfaced as ``ProbeError``; the scheduler decides what
to do with it (log and keep the previous value). A single link that cannot
be resolved is reported UNAVAILABLE instead.

Probe A, attachment size:
    AttachmentSizeProbe(connection_factory).fetch_total_size() -> int

Probe B, application link statuses:
    ApplicationLinkStatusProbe(registry, resolver).fetch_statuses() -> {name: ordinal}
"""
from abc import ABC, abstractmethod
from contextlib import closing
from enum import IntEnum
from typing import Callable, Dict, Iterable, List, NamedTuple, Optional, Tuple

import requests

from src.common.exceptions import ProbeError
from src.common.logging_config import get_logger
from src.common.retry import retry_on_http_error

logger = get_logger(__name__)

TOTAL_SIZE_QUERY = "select sum(filesize) from fileattachment"
MANIFEST_PATH = "/rest/applinks/1.0/manifest"


class ApplicationStatus(IntEnum):
    """Reachability of a linked application. The value is the exported ordinal."""
    AVAILABLE = 0
    UNAVAILABLE = 1


class ApplicationLink(NamedTuple):
    """A configured application link"""
    name: str
    rpc_url: str
    type: str = "generic"


# ---------------------------------------------------------------------------
# Collaborator interfaces
# ---------------------------------------------------------------------------


class SizeProbe(ABC):
    """Aggregate size source."""

    name = "attachment_size"

    @abstractmethod
    def fetch_total_size(self) -> int:
        """Return the current aggregate size. Raises ProbeError."""
        ...


class LinkRegistry(ABC):
    """Source of the configured application links."""

    @abstractmethod
    def list_entities(self) -> List[Tuple[str, str, str]]:
        """Return ``(name, remote_address, link_type)`` triples."""
        ...


class StatusResolver(ABC):
    """Looks up the status of one remote application."""

    @abstractmethod
    def resolve_status(self, remote_address: str, link_type: str = "generic") -> int:
        """Return the status ordinal. Raises ProbeError."""
        ...


# ---------------------------------------------------------------------------
# Probe A: attachment size
# ---------------------------------------------------------------------------


class AttachmentSizeProbe(SizeProbe):
    """
    Sums attachment sizes with a single SQL aggregate.

    Args:
        connection_factory: Zero-argument callable returning a DB-API
            connection. The connection is closed after every query.
        query: Aggregate query returning one integer column
    """

    def __init__(
        self,
        connection_factory: Callable[[], object],
        query: str = TOTAL_SIZE_QUERY
    ):
        self.connection_factory = connection_factory
        self.query = query

    def fetch_total_size(self) -> int:
        try:
            with closing(self.connection_factory()) as connection:
                cursor = connection.cursor()
                try:
                    cursor.execute(self.query)
                    row = cursor.fetchone()
                finally:
                    cursor.close()
        except Exception as e:
            raise ProbeError(self.name, f"Failed to resolve attachments size: {e}") from e

        if row is None or row[0] is None:
            return 0
        return int(row[0])


# ---------------------------------------------------------------------------
# Probe B: application link statuses
# ---------------------------------------------------------------------------


class StaticLinkRegistry(LinkRegistry):
    """In-process registry of links, e.g. parsed from the command line."""

    def __init__(self, links: Iterable[ApplicationLink] = ()):
        self._links = list(links)

    @property
    def links(self) -> List[ApplicationLink]:
        return list(self._links)

    def list_entities(self) -> List[Tuple[str, str, str]]:
        return [(link.name, link.rpc_url, link.type) for link in self._links]


class ManifestStatusResolver(StatusResolver):
    """
    Resolves a link's status by fetching the remote application manifest.

    A 2xx answer means AVAILABLE. Any other status code, an exhausted
    connection retry or an unusable address means UNAVAILABLE.

    Args:
        session: Optional ``requests.Session`` to reuse connections
        timeout: Per-request timeout in seconds
        max_attempts: Attempts for connection errors and timeouts
    """

    def __init__(
        self,
        session: Optional[requests.Session] = None,
        timeout: float = 5.0,
        max_attempts: int = 3
    ):
        self.session = session or requests.Session()
        self.timeout = timeout
        self._fetch = retry_on_http_error(max_attempts=max_attempts)(self._get_manifest)

    def _get_manifest(self, url: str) -> requests.Response:
        return self.session.get(url, timeout=self.timeout)

    def resolve_status(self, remote_address: str, link_type: str = "generic") -> int:
        url = remote_address.rstrip("/") + MANIFEST_PATH
        try:
            response = self._fetch(url)
        except requests.RequestException as e:
            # Unreachable after retries, or a malformed address
            logger.warning(f"Manifest request for {link_type} link at {url} failed: {e}")
            return ApplicationStatus.UNAVAILABLE.value

        if 200 <= response.status_code < 300:
            return ApplicationStatus.AVAILABLE.value

        logger.debug(
            f"Manifest of {link_type} link at {url} answered {response.status_code}"
        )
        return ApplicationStatus.UNAVAILABLE.value


class ApplicationLinkStatusProbe:
    """
    Enumerates links and resolves the status of each one.

    The result replaces the previous mapping wholesale, so links removed
    from the registry disappear from the export on the next tick. A link
    whose status cannot be resolved is reported UNAVAILABLE; it never
    holds back the other links.
    """

    name = "link_status"

    def __init__(self, registry: LinkRegistry, resolver: StatusResolver):
        self.registry = registry
        self.resolver = resolver

    def fetch_statuses(self) -> Dict[str, int]:
        try:
            entities = self.registry.list_entities()
        except ProbeError:
            raise
        except Exception as e:
            raise ProbeError(self.name, f"Failed to list application links: {e}") from e

        statuses: Dict[str, int] = {}
        for name, remote_address, link_type in entities:
            try:
                statuses[name] = int(
                    self.resolver.resolve_status(remote_address, link_type)
                )
            except Exception as e:
                logger.warning(
                    f"Failed to resolve status of {name}, reporting unavailable: {e}",
                    extra={"probe": self.name}
                )
                statuses[name] = ApplicationStatus.UNAVAILABLE.value
        return statuses
