#!/usr/bin/env python3
"""
GitHub stats dashboard updater.

Collects statistics across ALL repositories of a user and rewrites the
marker-delimited sections of README.md:
- Public repo / follower / following counts
- Star count (sum over owned repos)
- Commits authored by the user (first 100 per repo; token only)
- Pull requests and issues opened (search API; token only)
- Repositories contributed to but not owned (search API; token only)
- Language byte totals (language table + tech stack badges)

Environment Variables:
  GITHUB_USERNAME (or USER_NAME) : GitHub login. Defaults to actor / repository owner.
  ACCESS_TOKEN (optional)        : Personal token. Falls back to GITHUB_TOKEN in Actions.
  STATS_PATH                     : Snapshot JSON output. Default stats.json.
  README_PATH                    : README to update. Default README.md.
  SHOW_BADGES                    : '1' => render tech stack badges. '0' => skip.
  DEBUG                          : '1' => verbose output.

README markers:
  <!-- LANGUAGES_START --> ... <!-- LANGUAGES_END -->
  <!-- STATS_START --> ... <!-- STATS_END -->
"""

from __future__ import annotations
import os
import re
import sys
import json
import time
import datetime
from typing import Dict, Any, List, Optional
from urllib.parse import quote

import requests
from dateutil import parser as date_parser
from dateutil import relativedelta

# ------------------ Config & Env ------------------
GITHUB_REPOSITORY = os.environ.get("GITHUB_REPOSITORY", "")
DEFAULT_OWNER = GITHUB_REPOSITORY.split("/")[0] if "/" in GITHUB_REPOSITORY else ""
USER_NAME = (os.environ.get("GITHUB_USERNAME") or os.environ.get("USER_NAME")
             or os.environ.get("GITHUB_ACTOR") or DEFAULT_OWNER)

ACCESS_TOKEN = os.environ.get("ACCESS_TOKEN") or os.environ.get("GITHUB_TOKEN")

STATS_PATH = os.environ.get("STATS_PATH", "stats.json")
README_PATH = os.environ.get("README_PATH", "README.md")
SHOW_BADGES = os.environ.get("SHOW_BADGES", "1") == "1"
DEBUG = os.environ.get("DEBUG", "0") == "1"
HTTP_TIMEOUT = float(os.environ.get("HTTP_TIMEOUT", "30"))

API_BASE = "https://api.github.com"
PAGE_SIZE = 100

REQUEST_COUNT: Dict[str, int] = {
    "user": 0,
    "repos": 0,
    "languages": 0,
    "commits": 0,
    "search": 0
}

LANGUAGES_START, LANGUAGES_END = "<!-- LANGUAGES_START -->", "<!-- LANGUAGES_END -->"
STATS_START, STATS_END = "<!-- STATS_START -->", "<!-- STATS_END -->"

TOP_BADGE_LANGUAGES = 6
DEFAULT_BADGE_COLOR = "gray"
BADGE_COLORS = {
    "JavaScript": "yellow",
    "TypeScript": "blue",
    "Python": "blue",
    "Java": "orange",
    "C++": "pink",
    "C": "gray",
    "C#": "green",
    "PHP": "purple",
    "Go": "lightblue",
    "Ruby": "red",
    "Swift": "orange",
    "Kotlin": "purple",
    "Rust": "brown",
    "Dart": "blue",
    "HTML": "red",
    "CSS": "blue",
    "Shell": "green",
}

def debug(msg: str):
    if DEBUG:
        print(f"[DEBUG] {msg}")

def warn(msg: str):
    print(f"[WARN] {msg}")

# ------------------ API Client ------------------
def build_headers(token: Optional[str]) -> Dict[str, str]:
    headers = {"Accept": "application/vnd.github+json"}
    if token:
        headers["Authorization"] = f"Bearer {token}"
    return headers

def api_get(url: str, token: Optional[str], tag: str, params: Optional[Dict[str, Any]] = None) -> requests.Response:
    """Single-attempt GET. Callers decide whether a failure is fatal."""
    REQUEST_COUNT[tag] += 1
    if not url.startswith("http"):
        url = f"{API_BASE}{url}"
    debug(f"{tag}: GET {url} {params or ''}")
    return requests.get(url, headers=build_headers(token), params=params, timeout=HTTP_TIMEOUT)

def fetch_user(login: str, token: Optional[str]) -> Dict[str, Any]:
    r = api_get(f"/users/{login}", token, "user")
    r.raise_for_status()
    return r.json()

def fetch_all_repos(login: str, token: Optional[str]) -> List[Dict[str, Any]]:
    repos: List[Dict[str, Any]] = []
    page = 1
    while True:
        r = api_get(f"/users/{login}/repos", token, "repos", params={"per_page": PAGE_SIZE, "page": page})
        r.raise_for_status()
        batch = r.json()
        if not batch:
            break
        repos.extend(batch)
        page += 1
    return repos

def fetch_repo_languages(repo: Dict[str, Any], token: Optional[str]) -> Dict[str, int]:
    try:
        r = api_get(repo["languages_url"], token, "languages")
        r.raise_for_status()
        return r.json()
    except requests.RequestException as e:
        warn(f"Error fetching languages for {repo.get('name')}: {e}")
        return {}

def fetch_repo_commit_count(repo: Dict[str, Any], login: str, token: Optional[str]) -> int:
    """Commits authored by `login`, first page only (at most 100)."""
    try:
        r = api_get(f"/repos/{repo['full_name']}/commits", token, "commits",
                    params={"author": login, "per_page": PAGE_SIZE})
        r.raise_for_status()
        commits = r.json()
    except requests.RequestException as e:
        warn(f"Error fetching commits for {repo.get('name')}: {e}")
        return 0
    if "next" in r.links:
        print(f"Repository {repo.get('name')} has more than {PAGE_SIZE} commits; counting the first {PAGE_SIZE} only.")
    return len(commits)

def search_total(kind: str, query: str, token: Optional[str]) -> int:
    """total_count of a search/issues or search/repositories query."""
    r = api_get(f"/search/{kind}", token, "search", params={"q": query})
    r.raise_for_status()
    return r.json()["total_count"]

# ------------------ Aggregation ------------------
def merge_languages(totals: Dict[str, int], repo_languages: Dict[str, int]) -> Dict[str, int]:
    for lang, size in repo_languages.items():
        totals[lang] = totals.get(lang, 0) + size
    return totals

def sort_languages(languages: Dict[str, int]) -> Dict[str, int]:
    # sorted() is stable, so ties keep first-seen order
    return dict(sorted(languages.items(), key=lambda kv: kv[1], reverse=True))

def utc_timestamp(now: Optional[datetime.datetime] = None) -> str:
    now = now or datetime.datetime.now(datetime.timezone.utc)
    return now.astimezone(datetime.timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")

def collect_stats(login: str, token: Optional[str]) -> Dict[str, Any]:
    print(f"Fetching GitHub stats for user: {login}")
    user = fetch_user(login, token)
    print(f"User data fetched successfully for {login}")

    print(f"Fetching repositories for {login}...")
    repos = fetch_all_repos(login, token)
    print(f"Found {len(repos)} repositories")

    total_stars = total_commits = 0
    languages: Dict[str, int] = {}
    for repo in repos:
        print(f"Processing repository: {repo.get('name')}")
        total_stars += repo.get("stargazers_count", 0)
        merge_languages(languages, fetch_repo_languages(repo, token))
        if token:
            total_commits += fetch_repo_commit_count(repo, login, token)

    pr_count = issue_count = contributed = 0
    if token:
        pr_count = search_total("issues", f"author:{login} type:pr", token)
        print(f"Found {pr_count} pull requests by {login}")
        issue_count = search_total("issues", f"author:{login} type:issue", token)
        print(f"Found {issue_count} issues by {login}")
        contributed = search_total("repositories", f"contributor:{login} -user:{login}", token)
        print(f"User has contributed to {contributed} repositories owned by others")
    else:
        print("No token supplied; skipping commit, PR, issue and contribution counts.")

    updated_at = utc_timestamp()
    return {
        "username": user["login"],
        "name": user.get("name") or user["login"],
        "avatar_url": user.get("avatar_url"),
        "html_url": user.get("html_url"),
        "public_repos": user.get("public_repos", 0),
        "followers": user.get("followers", 0),
        "following": user.get("following", 0),
        "created_at": user.get("created_at"),
        "total_stars": total_stars,
        "total_commits": total_commits,
        "total_prs": pr_count,
        "total_issues": issue_count,
        "contributed_repos": contributed,
        "languages": sort_languages(languages),
        "updated_at": updated_at,
        "current_year": int(updated_at[:4])
    }

# ------------------ Snapshot ------------------
def write_stats(stats: Dict[str, Any], path: str = STATS_PATH):
    with open(path, "w", encoding="utf-8") as f:
        json.dump(stats, f, indent=2, ensure_ascii=False)
    print(f"GitHub stats saved to {path}")

def load_stats(path: str = STATS_PATH) -> Dict[str, Any]:
    with open(path, "r", encoding="utf-8") as f:
        return json.load(f)

# ------------------ README Update ------------------
def format_kb(size: int) -> str:
    return f"{size // 1024}KB"

def badge_color(language: str) -> str:
    return BADGE_COLORS.get(language, DEFAULT_BADGE_COLOR)

def build_language_table(languages: Dict[str, int]) -> str:
    table = "| Language | Size |\n| -------- | ---- |\n"
    if not languages:
        return table + "| No languages detected | - |\n"
    for lang, size in languages.items():
        table += f"| {lang} | {format_kb(size)} |\n"
    return table

def badge_label(language: str) -> str:
    # shields.io splits on "-"; "--" and "__" render as literal dash / underscore
    return quote(language.replace("-", "--").replace("_", "__"))

def build_badges(languages: Dict[str, int]) -> str:
    badges = []
    for lang in list(languages)[:TOP_BADGE_LANGUAGES]:
        badges.append(
            f"![{lang}](https://img.shields.io/badge/-{badge_label(lang)}-{badge_color(lang)}"
            f"?style=flat-square&logo={quote(lang.lower())})"
        )
    return " ".join(badges)

def format_timestamp(iso: str) -> str:
    """Local-time, locale-formatted rendering of a snapshot timestamp."""
    return date_parser.isoparse(iso).astimezone().strftime("%c")

def account_age(created_at: Optional[str], updated_at: str) -> str:
    if not created_at:
        return "-"
    diff = relativedelta.relativedelta(date_parser.isoparse(updated_at), date_parser.isoparse(created_at))
    return f"{diff.years} year{'s' if diff.years != 1 else ''}, {diff.months} month{'s' if diff.months != 1 else ''}, {diff.days} day{'s' if diff.days != 1 else ''}"

def build_stats_section(stats: Dict[str, Any], show_badges: bool = SHOW_BADGES) -> str:
    section = (
        "\n## GitHub Stats\n\n"
        f"- **Total Repositories:** {stats['public_repos']}\n"
        f"- **Total Stars:** {stats['total_stars']}\n"
        f"- **Total Commits:** {stats['total_commits']}\n"
        f"- **Total PRs:** {stats['total_prs']}\n"
        f"- **Total Issues:** {stats['total_issues']}\n"
        f"- **Contributed to:** {stats['contributed_repos']} repositories\n"
        f"- **Followers:** {stats['followers']}\n"
        f"- **Following:** {stats['following']}\n"
        f"- **Account Age:** {account_age(stats.get('created_at'), stats['updated_at'])}\n"
        f"- **Last Updated:** {format_timestamp(stats['updated_at'])}\n"
    )
    if show_badges:
        section += f"\n### Tech Stack\n\n{build_badges(stats['languages'])}\n"
    return section

def replace_section(content: str, start_marker: str, end_marker: str, body: str) -> str:
    """Replace the first START..END span (non-greedy) with the markers around `body`."""
    pattern = re.compile(rf"{re.escape(start_marker)}[\s\S]*?{re.escape(end_marker)}")
    return pattern.sub(lambda _: f"{start_marker}{body}{end_marker}", content, count=1)

def ensure_markers(content: str) -> str:
    if LANGUAGES_START not in content:
        content += f"\n## Languages\n{LANGUAGES_START}\n{LANGUAGES_END}\n"
    if STATS_START not in content:
        content += f"\n{STATS_START}\n{STATS_END}\n"
    return content

def default_readme(username: str) -> str:
    return f"""# {username}'s GitHub Profile

![Profile Views](https://komarev.com/ghpvc/?username={username.lower()}&color=blueviolet)

Welcome to my GitHub profile! Here you can find information about my coding projects and statistics.

## Languages
{LANGUAGES_START}
{LANGUAGES_END}

{STATS_START}
{STATS_END}

## Projects

Here are some of my key projects:

1. Project 1 - Description
2. Project 2 - Description
3. Project 3 - Description

## Connect with Me

- GitHub: [{username}](https://github.com/{username})
"""

def render_readme(content: str, stats: Dict[str, Any], show_badges: bool = SHOW_BADGES) -> str:
    content = ensure_markers(content)
    content = replace_section(content, LANGUAGES_START, LANGUAGES_END,
                              "\n" + build_language_table(stats["languages"]))
    content = replace_section(content, STATS_START, STATS_END,
                              build_stats_section(stats, show_badges))
    return content

def update_readme(stats: Dict[str, Any], path: str = README_PATH, show_badges: bool = SHOW_BADGES):
    if not os.path.exists(path):
        with open(path, "w", encoding="utf-8") as f:
            f.write(default_readme(stats["username"]))
        print(f"Created default {path}")
    with open(path, "r", encoding="utf-8") as f:
        content = f.read()
    # render before truncating so a bad snapshot leaves the file untouched
    new_content = render_readme(content, stats, show_badges)
    with open(path, "w", encoding="utf-8") as f:
        f.write(new_content)
    print(f"{path} updated with GitHub stats")

# ------------------ Main ------------------
def main():
    if not USER_NAME:
        print("ERROR: Cannot infer GITHUB_USERNAME. Set GITHUB_USERNAME env variable.", file=sys.stderr)
        sys.exit(1)
    print("Starting GitHub stats generation...")
    t0 = time.time()

    stats = collect_stats(USER_NAME, ACCESS_TOKEN)
    write_stats(stats, STATS_PATH)
    update_readme(stats, README_PATH, SHOW_BADGES)

    print("Done in {:.2f}s".format(time.time() - t0))
    print("REST request counts:", REQUEST_COUNT)

if __name__ == "__main__":
    try:
        main()
    except Exception as e:
        print(f"ERROR: Failed to generate GitHub stats: {e}", file=sys.stderr)
        sys.exit(1)
