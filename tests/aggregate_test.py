"""Pagination and language aggregation tests."""
from unittest.mock import patch
import importlib
import itertools
import pathlib
import sys

import pytest

USER = "pager"
API = "https://api.github.com"

class FakeResp:
    def __init__(self, payload):
        self.payload = payload
        self.status_code = 200
        self.links = {}
    def json(self):
        return self.payload
    def raise_for_status(self):
        pass

def make_repos(n):
    return [{"name": f"r{i}", "full_name": f"{USER}/r{i}", "stargazers_count": i,
             "languages_url": f"{API}/repos/{USER}/r{i}/languages"} for i in range(n)]

def paged_get(repos):
    def fake_get(url, headers=None, params=None, timeout=30):
        if url == f"{API}/users/{USER}":
            return FakeResp({"login": USER})
        if url == f"{API}/users/{USER}/repos":
            size, page = params["per_page"], params["page"]
            return FakeResp(repos[(page - 1) * size:page * size])
        return FakeResp({})
    return fake_get

@pytest.fixture
def update_stats(monkeypatch):
    monkeypatch.setenv("GITHUB_USERNAME", USER)
    monkeypatch.delenv("ACCESS_TOKEN", raising=False)
    monkeypatch.delenv("GITHUB_TOKEN", raising=False)
    repo_root = pathlib.Path(__file__).resolve().parents[1]
    if str(repo_root) not in sys.path:
        sys.path.insert(0, str(repo_root))
    return importlib.reload(importlib.import_module("update_stats"))

@pytest.mark.parametrize("count", [0, 1, 99, 100, 101, 200, 250])
def test_pagination_boundaries(update_stats, count):
    repos = make_repos(count)
    with patch("requests.get", side_effect=paged_get(repos)) as mock_get:
        fetched = update_stats.fetch_all_repos(USER, None)
        stats = update_stats.collect_stats(USER, None)

    assert [r["name"] for r in fetched] == [r["name"] for r in repos]
    assert stats["total_stars"] == sum(range(count))
    # pages needed plus the terminating empty page, once per listing
    pages = -(-count // 100) + 1
    repo_calls = [c for c in mock_get.call_args_list if c.args[0].endswith("/repos")]
    assert len(repo_calls) == 2 * pages

def test_language_merge_is_order_independent(update_stats):
    per_repo = [
        {"Python": 100, "C": 5},
        {"C": 50, "Go": 7},
        {"Python": 1, "Go": 3, "Rust": 9},
    ]
    results = []
    for order in itertools.permutations(per_repo):
        totals = {}
        for langs in order:
            update_stats.merge_languages(totals, langs)
        results.append(totals)
    assert all(r == {"Python": 101, "C": 55, "Go": 10, "Rust": 9} for r in results)
    assert list(update_stats.sort_languages(results[0])) == ["Python", "C", "Go", "Rust"]

def test_sort_languages_keeps_first_seen_on_ties(update_stats):
    ordered = update_stats.sort_languages({"Zig": 10, "Ada": 10, "Go": 20})
    assert list(ordered) == ["Go", "Zig", "Ada"]
