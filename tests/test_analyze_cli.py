import json

from autotracko.analyze import _parse_args, run


def _raw_result(domain, trackers, category=None):
    out = {
        "requestedUrl": f"https://{domain}",
        "finalUrl": f"https://{domain}/",
        "domain": domain,
        "timestamp": "2024-01-01T00:00:00.000Z",
        "screenshotPath": None,
        "totalSize": 1000,
        "resourceUrls": [],
        "trackers": [{"domain": d, "info": {"owner": o, "prevalence": 0.5, "rules": []}} for d, o in trackers],
    }
    if category:
        out["domainMetadata"] = {"category": category}
    return out


def _args(tmp_path, results):
    return _parse_args([
        "--results", str(results),
        "--output", str(tmp_path / "out" / "normalized_results.json"),
        "--analytics-output", str(tmp_path / "out" / "analytics.json"),
    ])


def test_run_writes_normalized_and_analytics(tmp_path):
    results = tmp_path / "results.json"
    results.write_text(json.dumps([
        _raw_result("a.com", [("t.com", "T"), ("u.com", "U")], category="News"),
        _raw_result("b.com", [("t.com", "T")]),
    ]), encoding="utf-8")

    assert run(_args(tmp_path, results)) == 0

    normalized = json.loads((tmp_path / "out" / "normalized_results.json").read_text(encoding="utf-8"))
    assert normalized["sourceFile"] == "results.json"
    assert list(normalized["allTrackers"]) == ["t.com", "u.com"]
    assert "rules" not in normalized["allTrackers"]["t.com"]

    analytics = json.loads((tmp_path / "out" / "analytics.json").read_text(encoding="utf-8"))
    assert analytics["inputFile"] == "normalized_results.json"
    assert analytics["summary"]["totalSitesProcessed"] == 2
    assert analytics["topTrackerOwners"][0] == {"name": "T", "count": 2, "percentage": 100.0}
    assert set(analytics["analysisByCategory"]) == {"News", "Unknown Category"}


def test_run_fails_on_empty_results(tmp_path):
    results = tmp_path / "results.json"
    results.write_text("[]", encoding="utf-8")
    assert run(_args(tmp_path, results)) == 1
    assert not (tmp_path / "out" / "analytics.json").exists()


def test_run_fails_on_missing_or_malformed_results(tmp_path):
    assert run(_args(tmp_path, tmp_path / "missing.json")) == 1

    bad = tmp_path / "bad.json"
    bad.write_text('{"unexpected": true}', encoding="utf-8")
    assert run(_args(tmp_path, bad)) == 1


def test_run_fails_on_non_utf8_results(tmp_path):
    results = tmp_path / "results.json"
    results.write_bytes(b"\xff\xfe\x00[")
    assert run(_args(tmp_path, results)) == 1
