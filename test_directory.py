import pytest
import requests

from conftest import CONFIG_URL, MIRROR_URLS, PRIMARY_XML, SERVERS_XML, FakeHttp
from speedprobe.errors import DirectoryUnavailable
from speedprobe.measurements.directory import DirectoryResolver
from speedprobe.measurements.models import Coordinate

EMBEDDED_XML = PRIMARY_XML.replace(
    "</settings>",
    '<servers><server url="http://embedded.example/upload.php" lat="50.0" lon="14.0" '
    'name="Prague" country="Czechia" cc="CZ" sponsor="Vltava" id="9" host="embedded.example" />'
    "</servers></settings>",
)


def resolver_for(documents):
    http = FakeHttp(documents=documents)
    return http, DirectoryResolver(http, CONFIG_URL, MIRROR_URLS)


def test_resolve_ranks_by_distance_and_drops_ignored_ids():
    _, resolver = resolver_for({CONFIG_URL: PRIMARY_XML, MIRROR_URLS[0]: SERVERS_XML})

    directory = resolver.resolve()

    assert [server.id for server in directory] == ["1", "4", "2"]
    assert len(directory) == 5 - 2
    distances = [server.distance for server in directory]
    assert all(distance >= 0 for distance in distances)
    assert distances == sorted(distances)
    assert not {"3", "7"} & {server.id for server in directory}


def test_resolve_parses_client_profile():
    _, resolver = resolver_for({CONFIG_URL: PRIMARY_XML, MIRROR_URLS[0]: SERVERS_XML})

    client = resolver.resolve().client

    assert client.ip == "203.0.113.5"
    assert client.isp == "Example ISP"
    assert client.isp_rating == pytest.approx(3.7)
    assert client.coordinate == Coordinate(52.52, 13.40)
    assert client.ignore_ids == frozenset({"3", "7"})


def test_resolve_skips_failing_and_malformed_mirrors():
    http, resolver = resolver_for(
        {
            CONFIG_URL: PRIMARY_XML,
            MIRROR_URLS[0]: requests.ConnectionError("refused"),
            MIRROR_URLS[1]: "<html><body>maintenance</body>",
            MIRROR_URLS[2]: SERVERS_XML,
            MIRROR_URLS[3]: SERVERS_XML,
        }
    )

    directory = resolver.resolve()

    assert len(directory) == 3
    assert MIRROR_URLS[3] not in http.requested


def test_resolve_prefers_servers_embedded_in_primary_document():
    http, resolver = resolver_for({CONFIG_URL: EMBEDDED_XML, MIRROR_URLS[0]: SERVERS_XML})

    directory = resolver.resolve()

    assert [server.id for server in directory] == ["9"]
    assert http.requested == [CONFIG_URL]


def test_resolve_returns_empty_directory_when_every_mirror_fails():
    _, resolver = resolver_for({CONFIG_URL: PRIMARY_XML})

    directory = resolver.resolve()

    assert len(directory) == 0
    assert directory.client.ip == "203.0.113.5"


@pytest.mark.parametrize("primary", [requests.ConnectionError("down"), "not xml", "<other/>"])
def test_resolve_raises_when_primary_document_is_unusable(primary):
    _, resolver = resolver_for({CONFIG_URL: primary, MIRROR_URLS[0]: SERVERS_XML})

    with pytest.raises(DirectoryUnavailable):
        resolver.resolve()


def test_distance_is_symmetric_and_zero_for_same_point():
    berlin = Coordinate(52.52, 13.405)
    paris = Coordinate(48.8566, 2.3522)

    assert berlin.distance_to(berlin) == 0
    assert berlin.distance_to(paris) == pytest.approx(paris.distance_to(berlin))
    assert 870_000 < berlin.distance_to(paris) < 890_000
