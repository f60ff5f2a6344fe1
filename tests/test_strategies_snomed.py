from __future__ import annotations

import httpx
import pytest

from termsync import catalog
from termsync.errors import NotFoundError, ServiceError
from termsync.models import ImportParams
from termsync.strategies.snomed import EDITIONS, SnomedImportStrategy, parse_feed

SNOMED = catalog.resolve("snomed")

INT = "http://snomed.info/sct/900000000000207008"
BE = "http://snomed.info/sct/11000172109"
INT_FILE = "SnomedCT_InternationalRF2_PRODUCTION_20240101T120000Z.zip"
BE_FILE = "SnomedCT_BelgianExtensionRF2_PRODUCTION_20240315T120000Z.zip"
OLD_INT_FILE = "SnomedCT_InternationalRF2_PRODUCTION_20230701T120000Z.zip"
NL_FILE = "SnomedCT_NetherlandsReleaseRF2_PRODUCTION_20240331T120000Z.zip"

FEED = f"""<?xml version="1.0" encoding="UTF-8"?>
<feed xmlns="http://www.w3.org/2005/Atom"
      xmlns:ncts="http://ns.electronichealth.net.au/ncts/syndication/asf/extensions/1.0.0"
      xmlns:sct="http://snomed.info/syndication/sct-extension/1.0.0">
  <title>SNOMED CT syndication feed</title>
  <entry>
    <title>International Edition 20230701</title>
    <category term="SCT_RF2_SNAPSHOT" scheme="http://ns.electronichealth.net.au/ncts/syndication/asf/scheme/1.0.0"/>
    <link rel="alternate" type="application/zip" href="https://mlds.example.org/files/SnomedCT_InternationalRF2_PRODUCTION_20230701T120000Z.zip"/>
    <ncts:contentItemIdentifier>{INT}</ncts:contentItemIdentifier>
    <ncts:contentItemVersion>{INT}/version/20230701</ncts:contentItemVersion>
  </entry>
  <entry>
    <title>International Edition 20240101</title>
    <category term="SCT_RF2_SNAPSHOT" scheme="http://ns.electronichealth.net.au/ncts/syndication/asf/scheme/1.0.0"/>
    <link rel="alternate" type="application/zip" href="https://mlds.example.org/files/{INT_FILE}"/>
    <ncts:contentItemIdentifier>{INT}</ncts:contentItemIdentifier>
    <ncts:contentItemVersion>{INT}/version/20240101</ncts:contentItemVersion>
  </entry>
  <entry>
    <title>Belgian Extension 20240315</title>
    <category term="SCT_RF2_SNAPSHOT" scheme="http://ns.electronichealth.net.au/ncts/syndication/asf/scheme/1.0.0"/>
    <link rel="alternate" type="application/zip" href="https://mlds.example.org/files/{BE_FILE}"/>
    <ncts:contentItemIdentifier>{BE}/</ncts:contentItemIdentifier>
    <ncts:contentItemVersion>{BE}/version/20240315</ncts:contentItemVersion>
    <sct:editionDependency>{INT}/version/20240101</sct:editionDependency>
  </entry>
  <entry>
    <title>Release notes</title>
    <category term="RELEASE_NOTES"/>
    <link rel="alternate" href="https://mlds.example.org/files/notes.pdf"/>
  </entry>
</feed>
"""


class FeedServer:
    def __init__(self) -> None:
        self.downloads = []
        self.authorization = []
        self.missing = set()

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.authorization.append(request.headers.get("Authorization"))
        if request.url.path == "/api/feed":
            return httpx.Response(200, text=FEED)
        if request.url.path.startswith("/files/"):
            name = request.url.path.rsplit("/", 1)[-1]
            if name in self.missing:
                return httpx.Response(404)
            self.downloads.append(name)
            return httpx.Response(200, content=b"PK")
        return httpx.Response(404)


@pytest.fixture
def server() -> FeedServer:
    return FeedServer()


@pytest.fixture
def strategy(settings, content_store, server: FeedServer) -> SnomedImportStrategy:
    return SnomedImportStrategy(settings, content_store, transport=httpx.MockTransport(server))


def test_parse_feed_keeps_rf2_entries() -> None:
    entries = parse_feed(FEED)

    assert [entry.version_uri for entry in entries] == [
        f"{INT}/version/20230701",
        f"{INT}/version/20240101",
        f"{BE}/version/20240315",
    ]
    belgian = entries[-1]
    assert belgian.identifier == BE
    assert belgian.dependency == f"{INT}/version/20240101"
    assert belgian.effective_date == "20240315"
    assert belgian.file_name == BE_FILE


def test_parse_feed_rejects_invalid_xml() -> None:
    with pytest.raises(ServiceError):
        parse_feed("<feed>")


def test_latest_international_release(strategy: SnomedImportStrategy, server: FeedServer) -> None:
    files = strategy.fetch_packages(ImportParams(terminology=SNOMED, version="latest"))

    assert [path.name for path in files] == [INT_FILE]
    assert server.downloads == [INT_FILE]
    assert strategy.parse_version(files[-1].name) == f"{INT}/version/20240101"


def test_extension_release_includes_international_dependency_first(
    strategy: SnomedImportStrategy, server: FeedServer
) -> None:
    files = strategy.fetch_packages(ImportParams(terminology=SNOMED, version="latest", extension_name="be"))

    assert [path.name for path in files] == [INT_FILE, BE_FILE]
    assert strategy.parse_version(files[-1].name) == f"{BE}/version/20240315"


def test_specific_release_by_version_uri(strategy: SnomedImportStrategy) -> None:
    files = strategy.fetch_packages(ImportParams(terminology=SNOMED, version=f"{INT}/version/20230701"))

    assert [path.name for path in files] == ["SnomedCT_InternationalRF2_PRODUCTION_20230701T120000Z.zip"]


def test_specific_release_by_effective_date(strategy: SnomedImportStrategy) -> None:
    files = strategy.fetch_packages(ImportParams(terminology=SNOMED, version="20230701"))

    assert strategy.parse_version(files[-1].name) == f"{INT}/version/20230701"


def test_unpublished_release_raises_not_found(strategy: SnomedImportStrategy) -> None:
    with pytest.raises(NotFoundError):
        strategy.fetch_packages(ImportParams(terminology=SNOMED, version="20990101"))


def test_unsupported_version_and_extension(strategy: SnomedImportStrategy) -> None:
    with pytest.raises(ServiceError, match="Unsupported SNOMED CT version"):
        strategy.fetch_packages(ImportParams(terminology=SNOMED, version="v2024"))
    with pytest.raises(ServiceError, match="Unsupported SNOMED CT extension"):
        strategy.fetch_packages(ImportParams(terminology=SNOMED, version="latest", extension_name="XX"))


def test_latest_version_for_edition_uri_hint(strategy: SnomedImportStrategy) -> None:
    assert strategy.discover_latest_version(BE) == f"{BE}/version/20240315"
    assert strategy.discover_latest_version("latest") == f"{INT}/version/20240101"


def test_default_extension_applies_without_request_extension(settings, content_store, server: FeedServer) -> None:
    strategy = SnomedImportStrategy(
        settings, content_store, default_extension="BE", transport=httpx.MockTransport(server)
    )

    assert strategy.discover_latest_version("latest") == f"{BE}/version/20240315"


def test_feed_credentials_are_sent(settings, content_store, server: FeedServer) -> None:
    settings = settings.model_copy(update={"snomed_feed_username": "reader", "snomed_feed_password": "secret"})
    strategy = SnomedImportStrategy(settings, content_store, transport=httpx.MockTransport(server))

    strategy.discover_latest_version("latest")

    assert server.authorization[0].startswith("Basic ")


def test_local_packages_put_international_first(strategy: SnomedImportStrategy, settings) -> None:
    working_directory = settings.working_directory("snomed")
    working_directory.mkdir(parents=True)
    for name in (BE_FILE, INT_FILE):
        (working_directory / name).write_bytes(b"PK")

    files = strategy.fetch_packages(ImportParams(terminology=SNOMED, version="local", extension_name="BE"))

    assert [path.name for path in files] == [INT_FILE, BE_FILE]


def test_local_edition_must_be_present(strategy: SnomedImportStrategy, settings) -> None:
    working_directory = settings.working_directory("snomed")
    working_directory.mkdir(parents=True)
    (working_directory / INT_FILE).write_bytes(b"PK")

    with pytest.raises(ServiceError):
        strategy.fetch_packages(ImportParams(terminology=SNOMED, version="local", extension_name="BE"))


def test_local_packages_use_newest_release_of_requested_edition(strategy: SnomedImportStrategy, settings) -> None:
    working_directory = settings.working_directory("snomed")
    working_directory.mkdir(parents=True)
    for name in (OLD_INT_FILE, INT_FILE, BE_FILE, NL_FILE):
        (working_directory / name).write_bytes(b"PK")

    belgian = strategy.fetch_packages(ImportParams(terminology=SNOMED, version="local", extension_name="BE"))
    international = strategy.fetch_packages(ImportParams(terminology=SNOMED, version="local"))

    assert [path.name for path in belgian] == [INT_FILE, BE_FILE]
    assert [path.name for path in international] == [INT_FILE]


def test_failed_extension_download_removes_international_package(
    strategy: SnomedImportStrategy, server: FeedServer, settings
) -> None:
    server.missing.add(BE_FILE)

    with pytest.raises(NotFoundError):
        strategy.fetch_packages(ImportParams(terminology=SNOMED, version="latest", extension_name="BE"))

    assert server.downloads == [INT_FILE]
    assert list(settings.working_directory("snomed").iterdir()) == []


def test_import_stores_every_package(strategy: SnomedImportStrategy, content_store) -> None:
    params = ImportParams(terminology=SNOMED, version="latest", extension_name="BE")

    strategy.import_packages(params, strategy.fetch_packages(params))

    assert (content_store.version_directory("snomed", f"{INT}/version/20240101") / INT_FILE).exists()
    assert (content_store.version_directory("snomed", f"{BE}/version/20240315") / BE_FILE).exists()


def test_known_editions() -> None:
    assert EDITIONS["INT"].uri == INT
    assert EDITIONS["BE"].version_uri("20240315") == f"{BE}/version/20240315"
