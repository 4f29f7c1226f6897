"""
Pytest fixtures for the server tests.

- templates/ trees built in tmp_path (no dependency on the repo's templates/)
- TestClient for route tests, a real uvicorn server for socket-level tests
- ENTSO-E XML documents built from plain quantity lists
"""

import asyncio
import threading
import time
from collections.abc import Callable, Generator
from pathlib import Path

import httpx
import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from educk.app.main import create_app
from educk.app.server import bind_listener, build_server
from educk.core.config import Settings
from educk.templates.store import TemplateStore

# =============================================================================
# Path Fixtures
# =============================================================================


@pytest.fixture
def project_root() -> Path:
    """Project root."""
    return Path(__file__).parent.parent


@pytest.fixture
def templates_root(tmp_path: Path, project_root: Path) -> Path:
    """
    templates/ tree:

    index.html, about.html, docs/index.html, greet.html (substitution),
    broken.html (undefined variable), notes.txt, _404.html, _partials/nav.html,
    _plot.html (copied from the repo)
    """
    root = tmp_path / "templates"
    (root / "docs").mkdir(parents=True)
    (root / "_partials").mkdir()

    (root / "index.html").write_text("<h1>Home</h1>\n", encoding="utf-8")
    (root / "about.html").write_text("<p>About us</p>\n", encoding="utf-8")
    (root / "docs" / "index.html").write_text("<p>Docs</p>\n", encoding="utf-8")
    (root / "greet.html").write_text(
        "Hello {{ request.query.get('name', 'world') }}!\n", encoding="utf-8"
    )
    (root / "broken.html").write_text("{{ missing_variable }}\n", encoding="utf-8")
    (root / "notes.txt").write_text("plain text notes\n", encoding="utf-8")
    (root / "_404.html").write_text("Missing: {{ request.path }}\n", encoding="utf-8")
    (root / "_partials" / "nav.html").write_text("<nav></nav>\n", encoding="utf-8")
    (root / "_plot.html").write_text(
        (project_root / "templates" / "_plot.html").read_text(encoding="utf-8"),
        encoding="utf-8",
    )
    return root


# =============================================================================
# App Fixtures
# =============================================================================


@pytest.fixture
def settings(templates_root: Path) -> Settings:
    """Settings for tests."""
    return Settings(
        host="127.0.0.1",
        port=3044,
        templates_dir=templates_root,
        grace_period=1.0,
        request_timeout=5.0,
        keep_alive_timeout=1.0,
    )


@pytest.fixture
def store(templates_root: Path) -> TemplateStore:
    """Loaded TemplateStore."""
    return TemplateStore.load(templates_root)


@pytest.fixture
def app(settings: Settings, store: TemplateStore) -> FastAPI:
    """FastAPI app without ENTSO-E client."""
    return create_app(settings, store)


@pytest.fixture
def client(app: FastAPI) -> Generator[TestClient, None, None]:
    """Test client."""
    with TestClient(app) as client:
        yield client


# =============================================================================
# ENTSO-E Fixtures
# =============================================================================


def build_gl_document(
    doc_type: str,
    start: str,
    quantities: list[float],
    resolution: str = "PT60M",
    end: str = "2023-08-17T00:00Z",
) -> str:
    """GL_MarketDocument XML with a single TimeSeries."""
    points = "\n".join(
        f"<Point><position>{i}</position><quantity>{q}</quantity></Point>"
        for i, q in enumerate(quantities, start=1)
    )
    return f"""<?xml version="1.0" encoding="utf-8"?>
<GL_MarketDocument xmlns="urn:iec62325.351:tc57wg16:451-6:generationloaddocument:3:0">
    <mRID>test123</mRID>
    <revisionNumber>1</revisionNumber>
    <type>{doc_type}</type>
    <process.processType>A01</process.processType>
    <sender_MarketParticipant.mRID codingScheme="A01">10X1001A1001A450</sender_MarketParticipant.mRID>
    <sender_MarketParticipant.marketRole.type>A32</sender_MarketParticipant.marketRole.type>
    <receiver_MarketParticipant.mRID codingScheme="A01">10X1001A1001A450</receiver_MarketParticipant.mRID>
    <receiver_MarketParticipant.marketRole.type>A33</receiver_MarketParticipant.marketRole.type>
    <createdDateTime>2026-01-07T19:26:41Z</createdDateTime>
    <time_Period.timeInterval>
        <start>{start}</start>
        <end>{end}</end>
    </time_Period.timeInterval>
    <TimeSeries>
        <mRID>1</mRID>
        <businessType>A04</businessType>
        <objectAggregation>A01</objectAggregation>
        <outBiddingZone_Domain.mRID codingScheme="A01">10YCZ-CEPS-----N</outBiddingZone_Domain.mRID>
        <quantity_Measure_Unit.name>MAW</quantity_Measure_Unit.name>
        <curveType>A01</curveType>
        <Period>
            <timeInterval>
                <start>{start}</start>
                <end>{end}</end>
            </timeInterval>
            <resolution>{resolution}</resolution>
            {points}
        </Period>
    </TimeSeries>
</GL_MarketDocument>"""


@pytest.fixture
def gl_document() -> Callable[..., str]:
    """Factory: build_gl_document(doc_type, start, quantities, resolution=...)."""
    return build_gl_document


ACKNOWLEDGEMENT_XML = """<?xml version="1.0" encoding="UTF-8"?>
<Acknowledgement_MarketDocument xmlns="urn:iec62325.351:tc57wg16:451-1:acknowledgementdocument:7:0">
    <mRID>ack-1</mRID>
    <Reason>
        <code>999</code>
        <text>No matching data found for Data item Day-ahead Total Load Forecast</text>
    </Reason>
</Acknowledgement_MarketDocument>"""


@pytest.fixture
def acknowledgement_xml() -> str:
    """ENTSO-E error document."""
    return ACKNOWLEDGEMENT_XML


# =============================================================================
# Live Server Fixture
# =============================================================================


@pytest.fixture
def live_server(settings: Settings, store: TemplateStore) -> Generator[str, None, None]:
    """
    uvicorn serving the app on an ephemeral port in a background thread.

    Returns:
        base URL (e.g. "http://127.0.0.1:54321")
    """
    sock = bind_listener("127.0.0.1", 0)
    port = sock.getsockname()[1]
    server = build_server(settings, create_app(settings, store))

    def run_server() -> None:
        asyncio.run(server.serve(sockets=[sock]))

    thread = threading.Thread(target=run_server, daemon=True)
    thread.start()

    base_url = f"http://127.0.0.1:{port}"
    for _ in range(50):
        if server.started:
            break
        time.sleep(0.1)
    else:
        raise RuntimeError("Failed to start test server")

    # sanity check before handing the URL out
    assert httpx.get(f"{base_url}/health", timeout=2.0, trust_env=False).status_code == 200

    yield base_url

    server.should_exit = True
    thread.join(timeout=5)
    sock.close()
