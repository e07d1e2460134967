import asyncio

from autotracko.collector import summarize_network
from autotracko.models import CollectedPage, DomainMetadata
from autotracko.scanner import error_result, identify_trackers, scan_website
from autotracko.tracker_registry import TrackerIndex

INDEX = TrackerIndex.build({
    "trackers": {
        "google-analytics.com": {"owner": "Google LLC", "prevalence": 0.9},
        "facebook.net": {"owner": "Facebook, Inc.", "prevalence": 0.8},
    }
})


class FakeCollector:
    def __init__(self, page: CollectedPage):
        self.page = page
        self.calls: list[str] = []

    async def collect(self, url: str) -> CollectedPage:
        self.calls.append(url)
        return self.page


def test_identify_trackers_dedups_hostnames_in_load_order():
    urls = [
        "https://site.com/",
        "https://connect.facebook.net/sdk.js",
        "https://www.google-analytics.com/analytics.js",
        "https://connect.facebook.net/other.js",
        "not a url",
        "",
        "https://cdn.site.com/app.js",
    ]
    hits = identify_trackers(urls, INDEX)
    assert [h.domain for h in hits] == ["connect.facebook.net", "www.google-analytics.com"]
    assert hits[0].info.owner == "Facebook, Inc."


def test_identify_trackers_without_index():
    assert identify_trackers(["https://www.google-analytics.com/a.js"], None) == []
    assert identify_trackers(["https://www.google-analytics.com/a.js"], TrackerIndex()) == []


def test_scan_website_builds_result_from_collected_page():
    page = CollectedPage(
        final_url="https://www.site.com/home",
        resource_urls=["https://www.site.com/home", "https://ssl.google-analytics.com/ga.js"],
        total_size=4321,
        screenshot_path="screenshots/www.site.com-1.png",
    )
    meta = DomainMetadata(category="News")
    collector = FakeCollector(page)

    result = asyncio.run(scan_website(collector, "https://site.com", INDEX, metadata=meta))

    assert collector.calls == ["https://site.com"]
    assert result.requested_url == "https://site.com"
    assert result.final_url == "https://www.site.com/home"
    assert result.domain == "www.site.com"
    assert result.total_size == 4321
    assert result.resource_urls == page.resource_urls
    assert [t.domain for t in result.trackers] == ["ssl.google-analytics.com"]
    assert result.error is None
    assert result.domain_metadata == meta
    assert result.timestamp.endswith("Z")


def test_scan_website_carries_navigation_error():
    collector = FakeCollector(CollectedPage(final_url="https://down.example", error="net::ERR_NAME_NOT_RESOLVED"))
    result = asyncio.run(scan_website(collector, "https://down.example", INDEX))
    assert result.error == "net::ERR_NAME_NOT_RESOLVED"
    assert result.trackers == []
    assert result.domain == "down.example"


def test_error_result_placeholder():
    r = error_result("https://a.com", "a.com", "boom")
    assert (r.final_url, r.domain, r.error, r.total_size) == ("https://a.com", "a.com", "boom", 0)
    assert r.trackers == [] and r.resource_urls == []
    assert r.to_dict()["error"] == "boom"


def test_summarize_network():
    events = [
        {"event_type": "request", "url": "https://a.com/"},
        {"event_type": "response", "url": "https://a.com/", "headers": {"Content-Length": "100"}},
        {"event_type": "request", "url": "https://t.com/x.js"},
        {"event_type": "response", "url": "https://t.com/x.js", "headers": {"content-length": "50"}},
        {"event_type": "response", "url": "https://t.com/x.js", "headers": {"content-length": "bogus"}},
        {"event_type": "request_failed", "url": "https://blocked.com/y.js"},
        {"event_type": "response", "headers": {}},
        "junk",
    ]
    urls, total = summarize_network(events)
    assert urls == ["https://a.com/", "https://t.com/x.js", "https://t.com/x.js", "https://blocked.com/y.js"]
    assert total == 150


def test_summarize_network_empty():
    assert summarize_network(None) == ([], 0)
    assert summarize_network([]) == ([], 0)
