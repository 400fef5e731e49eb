"""
Directory of external file-sharing services photographers deliver through.

Static reference data. Delivery validation uses it to check that a share
link belongs to the named service and that password/expiry details are
only given for services that support them.

Usage:
    from escrow.directory import get_service, list_services

    service = get_service("gigafile")
    if service and service.matches_url(url):
        ...
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from urllib.parse import urlparse

# Photographers may also deliver through services not listed here.
OTHER_SERVICE_ID = "other"


@dataclass(frozen=True)
class ExternalDeliveryService:
    """
    A third-party file-sharing service.

    Attributes:
        id: Stable identifier stored on PhotoDelivery.external_service
        name: Display name
        url_pattern: Base URL share links start from
        supports_password: Whether links can be password protected
        supports_expiry: Whether links expire
        max_file_size_gb: Largest upload the service accepts
        icon: Static path of the service icon
    """

    id: str
    name: str
    url_pattern: str
    supports_password: bool
    supports_expiry: bool
    max_file_size_gb: int
    icon: str

    @property
    def host(self) -> str:
        return _normalize_host(urlparse(self.url_pattern).hostname or "")

    def matches_url(self, url: str) -> bool:
        """
        Whether ``url`` is a link on this service.

        Subdomains count (gigafile serves links from numbered hosts such as
        ``46.gigafile.nu``).
        """
        parsed = urlparse(url)
        if parsed.scheme not in ("http", "https"):
            return False
        host = _normalize_host(parsed.hostname or "")
        return host == self.host or host.endswith(f".{self.host}")

    def to_dict(self) -> dict:
        return asdict(self)


def _normalize_host(host: str) -> str:
    host = host.lower()
    return host[4:] if host.startswith("www.") else host


EXTERNAL_DELIVERY_SERVICES: tuple[ExternalDeliveryService, ...] = (
    ExternalDeliveryService(
        id="gigafile",
        name="ギガファイル便",
        url_pattern="https://gigafile.nu/",
        supports_password=True,
        supports_expiry=True,
        max_file_size_gb=200,
        icon="/icons/gigafile.png",
    ),
    ExternalDeliveryService(
        id="firestorage",
        name="firestorage",
        url_pattern="https://firestorage.jp/",
        supports_password=True,
        supports_expiry=True,
        max_file_size_gb=250,
        icon="/icons/firestorage.png",
    ),
    ExternalDeliveryService(
        id="wetransfer",
        name="WeTransfer",
        url_pattern="https://wetransfer.com/",
        supports_password=False,
        supports_expiry=True,
        max_file_size_gb=2,
        icon="/icons/wetransfer.png",
    ),
    ExternalDeliveryService(
        id="googledrive",
        name="Google Drive",
        url_pattern="https://drive.google.com/",
        supports_password=False,
        supports_expiry=False,
        max_file_size_gb=15,
        icon="/icons/googledrive.png",
    ),
    ExternalDeliveryService(
        id="dropbox",
        name="Dropbox",
        url_pattern="https://dropbox.com/",
        supports_password=True,
        supports_expiry=True,
        max_file_size_gb=2,
        icon="/icons/dropbox.png",
    ),
)

_SERVICES_BY_ID = {service.id: service for service in EXTERNAL_DELIVERY_SERVICES}


def list_services() -> list[ExternalDeliveryService]:
    return list(EXTERNAL_DELIVERY_SERVICES)


def get_service(service_id: str) -> ExternalDeliveryService | None:
    return _SERVICES_BY_ID.get(service_id)


def is_known_service(service_id: str) -> bool:
    return service_id == OTHER_SERVICE_ID or service_id in _SERVICES_BY_ID


__all__ = [
    "ExternalDeliveryService",
    "EXTERNAL_DELIVERY_SERVICES",
    "OTHER_SERVICE_ID",
    "get_service",
    "is_known_service",
    "list_services",
]
