import json

import pytest

from autotracko.errors import TrackerRegistryError
from autotracko.models import TrackerEntry
from autotracko.tracker_registry import (
    TrackerIndex,
    find_tracker_info,
    load_tracker_index,
    normalize_domain,
    parse_tracker_data,
)

GOOGLE = {"owner": "Google LLC", "prevalence": 0.9}
FACEBOOK = {"owner": "Facebook, Inc.", "prevalence": 0.8}
EXAMPLE = {"owner": "Example Org", "prevalence": 0.1}
ANALYTICS = {"owner": "Analytics Co", "prevalence": 0.2}

REGISTRY = {
    "trackers": {
        "google-analytics.com": GOOGLE,
        "facebook.net": FACEBOOK,
        "example.com": EXAMPLE,
        "www.analytics-provider.net": ANALYTICS,
    },
    "entities": {},
}


@pytest.fixture
def index():
    return TrackerIndex.build(REGISTRY)


@pytest.mark.parametrize(
    "domain, expected",
    [
        ("GOOGLE.COM", "google.com"),
        ("www.google.com", "google.com"),
        ("WWW.Example.COM", "example.com"),
        ("sub.www.example.com", "sub.www.example.com"),
        ("www.www.example.com", "www.example.com"),
        ("", ""),
        ("google.com", "google.com"),
    ],
)
def test_normalize_domain(domain, expected):
    assert normalize_domain(domain) == expected


def test_normalize_domain_idempotent():
    for d in ["WWW.Example.COM", "Sub.WWW.x.org", "www.", "", "a..b.", "WWW.google-analytics.com"]:
        once = normalize_domain(d)
        assert normalize_domain(once) == once


def test_parse_tracker_data_valid():
    assert parse_tracker_data(json.dumps(REGISTRY)) == REGISTRY


@pytest.mark.parametrize(
    "raw",
    ['{"entities": {}}', '{"trackers": []}', '{"trackers": null}', '{"trackers": "not-an-object"}', "[]"],
)
def test_parse_tracker_data_rejects_bad_shape(raw):
    with pytest.raises(TrackerRegistryError, match="valid 'trackers' object"):
        parse_tracker_data(raw)


def test_parse_tracker_data_rejects_bad_json():
    with pytest.raises(TrackerRegistryError, match="^Invalid tracker data format: "):
        parse_tracker_data("{invalid json")


def test_index_maps_normalized_to_original_keys(index):
    assert len(index) == 4
    assert index.original_key("google-analytics.com") == "google-analytics.com"
    assert index.original_key("analytics-provider.net") == "www.analytics-provider.net"
    assert index.original_key("www.analytics-provider.net") is None


@pytest.mark.parametrize("registry", [None, {}, {"trackers": []}, {"trackers": None}, {"trackers": "x"}])
def test_index_from_malformed_registry_is_empty(registry):
    assert len(TrackerIndex.build(registry)) == 0


def test_index_skips_non_object_entries():
    idx = TrackerIndex.build({"trackers": {"good.com": GOOGLE, "bad.com": "nope"}})
    assert len(idx) == 1
    assert idx.resolve("bad.com") is None


@pytest.mark.parametrize(
    "domain, expected",
    [
        ("google-analytics.com", GOOGLE),
        ("GOOGLE-ANALYTICS.COM", GOOGLE),
        ("www.google-analytics.com", GOOGLE),
        ("facebook.net", FACEBOOK),
        ("analytics-provider.net", ANALYTICS),
        ("www.analytics-provider.net", ANALYTICS),
        ("track.google-analytics.com", GOOGLE),
        ("metrics.EXAMPLE.com", EXAMPLE),
        ("connect.www.facebook.net", FACEBOOK),
        ("data.analytics-provider.net", ANALYTICS),
        ("google.com", None),
        ("notsub.notsuper.com", None),
        ("example.net", None),
        ("myexample.com", None),
        ("", None),
        ("www.", None),
    ],
)
def test_resolve(index, domain, expected):
    got = index.resolve(domain)
    if expected is None:
        assert got is None
    else:
        assert got == TrackerEntry.from_dict(expected)


def test_subdomain_match_prefers_first_inserted_key():
    broad = {"owner": "Broad"}
    specific = {"owner": "Specific"}

    idx = TrackerIndex.build({"trackers": {"example.com": broad, "sub.example.com": specific}})
    assert idx.resolve("a.sub.example.com").owner == "Broad"
    assert idx.resolve("sub.example.com").owner == "Specific"

    idx = TrackerIndex.build({"trackers": {"sub.example.com": specific, "example.com": broad}})
    assert idx.resolve("a.sub.example.com").owner == "Specific"
    assert idx.resolve_key("x.example.com") == "example.com"


def test_duplicate_normalized_keys_last_write_wins():
    idx = TrackerIndex.build({"trackers": {"www.dup.com": {"owner": "First"}, "dup.com": {"owner": "Second"}}})
    assert len(idx) == 1
    assert idx.original_key("dup.com") == "dup.com"
    assert idx.resolve("cdn.dup.com").owner == "Second"


def test_find_tracker_info_without_index():
    assert find_tracker_info("google-analytics.com", None) is None
    assert find_tracker_info("google-analytics.com", TrackerIndex()) is None


def test_rules_never_kept_on_entries():
    idx = TrackerIndex.build({"trackers": {"t.com": {"owner": "T", "prevalence": 0.5, "rules": [{"rule": "x"}], "cookies": 0.1}}})
    entry = idx.resolve("t.com")
    assert "rules" not in entry.to_dict()
    assert entry.to_dict() == {"owner": "T", "prevalence": 0.5, "cookies": 0.1}


def test_owner_object_name():
    entry = TrackerEntry.from_dict({"owner": {"name": "Google LLC", "displayName": "Google"}, "prevalence": 0.9})
    assert entry.owner_name == "Google LLC"
    assert TrackerEntry.from_dict({"owner": {"displayName": "Google"}}).owner_name == "Google"
    assert TrackerEntry.from_dict({}).owner_name is None


def test_load_tracker_index(tmp_path):
    p = tmp_path / "tds.json"
    p.write_text(json.dumps(REGISTRY), encoding="utf-8")
    idx = load_tracker_index(p)
    assert len(idx) == 4
    assert idx.resolve("ssl.google-analytics.com").owner == "Google LLC"


def test_load_tracker_index_failures_are_distinct_from_empty(tmp_path):
    with pytest.raises(TrackerRegistryError, match="File not found"):
        load_tracker_index(tmp_path / "missing.json")

    bad = tmp_path / "bad.json"
    bad.write_text("{nope", encoding="utf-8")
    with pytest.raises(TrackerRegistryError):
        load_tracker_index(bad)

    empty = tmp_path / "empty.json"
    empty.write_text('{"trackers": {}}', encoding="utf-8")
    assert len(load_tracker_index(empty)) == 0


def test_unusable_values_survive_round_trip():
    raw = {"owner": "T", "categories": [], "prevalence": "high"}
    entry = TrackerEntry.from_dict(raw)
    assert entry.categories == ()
    assert entry.prevalence is None
    assert entry.to_dict() == raw
    assert TrackerEntry.from_dict(entry.to_dict()) == entry

    mixed = TrackerEntry.from_dict({"categories": ["Analytics", 3]})
    assert mixed.categories == ("Analytics",)
    assert mixed.to_dict() == {"categories": ["Analytics", 3]}

    single = TrackerEntry.from_dict({"categories": "Analytics"})
    assert single.categories == ("Analytics",)
    assert single.to_dict() == {"categories": "Analytics"}


def test_load_tracker_index_rejects_non_utf8(tmp_path):
    p = tmp_path / "tds.json"
    p.write_bytes(b"\xff\xfe{}")
    with pytest.raises(TrackerRegistryError):
        load_tracker_index(p)
