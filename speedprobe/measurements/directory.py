"""Server directory acquisition and distance ranking."""

from __future__ import annotations

import logging
import xml.etree.ElementTree as ET
from typing import List, Optional, Sequence

import requests

from ..errors import DirectoryUnavailable
from ..http_client import HttpClient
from .models import ClientProfile, Coordinate, ServerDescriptor, ServerDirectory

LOGGER = logging.getLogger(__name__)


def _float_attr(element: ET.Element, name: str) -> Optional[float]:
    raw = element.get(name)
    if raw in (None, ""):
        return None
    try:
        return float(raw)
    except ValueError:
        return None


def _parse_settings(text: str) -> ET.Element:
    root = ET.fromstring(text)
    if root.tag != "settings":
        raise ValueError(f"Expected <settings> root, got <{root.tag}>")
    return root


def parse_client_profile(root: ET.Element) -> ClientProfile:
    client = root.find("client")
    if client is None:
        raise ValueError("Configuration document has no <client> element")

    latitude = _float_attr(client, "lat")
    longitude = _float_attr(client, "lon")
    if latitude is None or longitude is None:
        raise ValueError("Client element is missing its coordinate")

    server_config = root.find("server-config")
    raw_ids = server_config.get("ignoreids", "") if server_config is not None else ""
    ignore_ids = frozenset(part.strip() for part in raw_ids.split(",") if part.strip())

    return ClientProfile(
        coordinate=Coordinate(latitude, longitude),
        ignore_ids=ignore_ids,
        ip=client.get("ip", ""),
        isp=client.get("isp", ""),
        country=client.get("country", ""),
        isp_rating=_float_attr(client, "isprating"),
        rating=_float_attr(client, "rating"),
        isp_download_avg=_float_attr(client, "ispdlavg"),
        isp_upload_avg=_float_attr(client, "ispulavg"),
    )


def parse_servers(root: ET.Element) -> List[ServerDescriptor]:
    servers = []
    for element in root.iter("server"):
        latitude = _float_attr(element, "lat")
        longitude = _float_attr(element, "lon")
        url = element.get("url")
        if not url or latitude is None or longitude is None:
            LOGGER.debug("Skipping incomplete server entry %s", element.attrib)
            continue
        servers.append(
            ServerDescriptor(
                id=element.get("id", ""),
                url=url,
                coordinate=Coordinate(latitude, longitude),
                name=element.get("name", ""),
                country=element.get("country", ""),
                cc=element.get("cc", ""),
                sponsor=element.get("sponsor", ""),
                host=element.get("host", ""),
            )
        )
    return servers


class DirectoryResolver:
    """Builds the distance-ranked server directory.

    The primary configuration document supplies the client profile and may
    embed a server list. When it does not, the mirrors are tried in order and
    the first non-empty list wins.
    """

    def __init__(self, http: HttpClient, config_url: str, server_urls: Sequence[str]):
        self.http = http
        self.config_url = config_url
        self.server_urls = list(server_urls)

    def _fetch_primary(self) -> ET.Element:
        try:
            return _parse_settings(self.http.get_text(self.config_url))
        except (requests.RequestException, ET.ParseError, ValueError) as exc:
            raise DirectoryUnavailable(f"Cannot load {self.config_url}: {exc}") from exc

    def _fetch_mirror(self, url: str) -> List[ServerDescriptor]:
        try:
            return parse_servers(_parse_settings(self.http.get_text(url)))
        except (requests.RequestException, ET.ParseError, ValueError) as exc:
            LOGGER.warning("Server mirror %s unusable: %s", url, exc)
            return []

    def resolve(self) -> ServerDirectory:
        root = self._fetch_primary()
        try:
            client = parse_client_profile(root)
        except ValueError as exc:
            raise DirectoryUnavailable(str(exc)) from exc

        servers = parse_servers(root)
        for url in self.server_urls:
            if servers:
                break
            servers = self._fetch_mirror(url)

        if not servers:
            LOGGER.warning("No servers available from %s or any mirror", self.config_url)
            return ServerDirectory(client=client)

        ranked = sorted(
            (
                server.with_distance(client.coordinate.distance_to(server.coordinate))
                for server in servers
                if server.id not in client.ignore_ids
            ),
            key=lambda server: server.distance,
        )
        LOGGER.info(
            "Resolved %d servers (%d ignored)", len(ranked), len(servers) - len(ranked)
        )
        return ServerDirectory(client=client, servers=tuple(ranked))
