import dataclasses
from urllib.parse import urlparse

import httpx
import pytest

from lawcrawl.settings import CrawlSettings
from lawcrawl.utils.fetcher import Fetcher


class SleepRecorder:
    """Stand-in for asyncio.sleep that records every requested delay."""

    def __init__(self):
        self.calls = []

    async def __call__(self, seconds):
        self.calls.append(seconds)


class FakeSite:
    """Serve canned pages through httpx.MockTransport and log every request."""

    def __init__(self, pages):
        self.pages = pages
        self.requests = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        url = str(request.url)
        self.requests.append(url)
        page = self.pages.get(url)
        if page is None:
            return httpx.Response(404, text="not found")
        if isinstance(page, tuple):
            status, body = page
            return httpx.Response(status, text=body)
        return httpx.Response(200, text=page, headers={"Content-Type": "text/html"})

    def paths(self):
        return [urlparse(u).path for u in self.requests]

    def count(self, url):
        return self.requests.count(url)


@pytest.fixture
def sleep():
    return SleepRecorder()


@pytest.fixture
def make_fetcher(sleep):
    def factory(pages, settings=None, insecure_hosts=()):
        site = FakeSite(pages)
        fetcher = Fetcher(
            settings or CrawlSettings(),
            insecure_hosts=set(insecure_hosts),
            transport=httpx.MockTransport(site.handler),
            sleep=sleep,
        )
        return fetcher, site

    return factory


def with_site(site, **changes):
    return dataclasses.replace(site, **changes)


def section_page(title="IV", chapter="5", section="12", body=None, extra="", links=()):
    """A Florida-style statute page."""
    if body is None:
        body = """
        <span class="SectionBody">
          <div class="Subsection">
            <span class="Number">(1)</span>
            <span class="Text Intro Justify">Definitions.</span>
            <div class="Paragraph">
              <span class="Number">(a)</span>
              <span class="Text Intro Justify">Meaning of
                 terms.</span>
            </div>
          </div>
        </span>
        """
    anchors = "".join(f'<a href="{href}">link</a>' for href in links)
    return f"""
    <html><body>
      <div id="breadcrumbs">
        <a href="/Laws/Statutes">Home</a> &gt;
        <a href="/Laws/Statutes/Title{title}">Title {title}</a> &gt;
        <a href="/Laws/Statutes/Chapter{chapter}">Chapter {chapter}</a> &gt;
        <span>Section {section}</span>
      </div>
      {body}
      {extra}
      {anchors}
    </body></html>
    """
