"""
Shared fixtures for webdigest tests.

Every test gets a Config whose PDF directory lives under ``tmp_path`` and
whose prometheus metrics are disabled, so nothing leaks between tests.
"""

import json
from pathlib import Path
from typing import AsyncGenerator, List

import pytest
import pytest_asyncio
from aioresponses import aioresponses

from webdigest.config.config import Config, LazyConfig
from webdigest.crawler.http_client import BoundedFetcher
from webdigest.observability.activity import ActivityMonitor
from webdigest.pipeline import ContentExtractor


def pytest_configure(config):
    config.addinivalue_line("markers", "unit: Unit tests for individual components")
    config.addinivalue_line("markers", "integration: Integration tests across modules")


@pytest.fixture(autouse=True)
def reset_lazy_settings():
    LazyConfig.reset()
    yield
    LazyConfig.reset()


@pytest.fixture
def pdf_dir(tmp_path: Path) -> Path:
    return tmp_path / "pdf"


@pytest.fixture
def config(pdf_dir: Path) -> Config:
    """Test configuration: small timeouts, isolated PDF dir, no metrics."""
    return Config(
        fetch={"timeout_ms": 2000},
        pdf={"output_dir": pdf_dir},
        monitoring={"metrics_enabled": False},
    )


@pytest.fixture
def mock_http():
    with aioresponses() as m:
        yield m


@pytest_asyncio.fixture
async def fetcher(config: Config) -> AsyncGenerator[BoundedFetcher, None]:
    client = BoundedFetcher(config.fetch)
    await client.initialize()
    yield client
    await client.close()


class RecordingActivityMonitor(ActivityMonitor):
    """ActivityMonitor that remembers which terminal channel each call used."""

    def __init__(self) -> None:
        super().__init__(metrics_enabled=False)
        self.starts: List[str] = []
        self.completions: List[tuple] = []
        self.errors: List[tuple] = []

    def log_start(self, *, type: str, url: str) -> str:
        activity_id = super().log_start(type=type, url=url)
        self.starts.append(url)
        return activity_id

    def log_complete(self, activity_id: str, status_code: int) -> None:
        self.completions.append((activity_id, status_code))
        super().log_complete(activity_id, status_code)

    def log_error(self, activity_id: str, message: str) -> None:
        self.errors.append((activity_id, message))
        super().log_error(activity_id, message)


@pytest.fixture
def activity() -> RecordingActivityMonitor:
    return RecordingActivityMonitor()


@pytest_asyncio.fixture
async def extractor(config: Config, activity: RecordingActivityMonitor) -> AsyncGenerator[ContentExtractor, None]:
    async with ContentExtractor(config, activity=activity) as content_extractor:
        yield content_extractor


@pytest.fixture
def article_html() -> str:
    paragraphs = "\n".join(
        f"<p>Paragraph {i} explains how the fetcher keeps every request inside its time and size budget, "
        f"and how the result is rendered as markdown for the reader.</p>"
        for i in range(1, 6)
    )
    return f"""
    <!DOCTYPE html>
    <html>
    <head><title>Budgeted Fetching</title></head>
    <body>
        <nav><a href="/">Home</a> <a href="/about">About</a></nav>
        <article>
            <h1>Budgeted Fetching</h1>
            {paragraphs}
            <ul><li>First point</li><li>Second point</li></ul>
        </article>
        <footer>Copyright</footer>
    </body>
    </html>
    """


@pytest.fixture
def flight_html() -> str:
    """A Next.js App Router shell whose content only exists in flight data."""
    rows = (
        '0:["$","main",null,{"children":[["$","h1",null,{"children":"Flight Title"}],'
        '["$","p",null,{"children":"Rendered from server components."}],"$L2"]}]\n'
        '1:I["chunks/app.js",["app"],"default"]\n'
        '2:["$","ul",null,{"children":[["$","li","a",{"children":"alpha"}],["$","li","b",{"children":"beta"}]]}]\n'
    )
    push = json.dumps([1, rows])
    return (
        "<!DOCTYPE html><html><head><title>Shell Page</title></head>"
        '<body><div id="__next"></div>'
        '<script>(self.__next_f=self.__next_f||[]).push([0])</script>'
        f"<script>self.__next_f.push({push})</script>"
        "</body></html>"
    )
