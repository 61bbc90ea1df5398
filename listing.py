"""
In-memory list filters shared by the list routes.

Each route loads the tenant's documents with a single ``company_id`` query and
narrows them here, so no composite index is ever needed.
"""
from typing import Any, Dict, Iterable, List, Optional

DIRECTORY_TABS = {
    "Tous": None,
    "Leads": "Leads",
    "Prospects": "Prospect",
    "Clients": "Client",
}


def _contains(value, needle: str) -> bool:
    return needle in (value or "").lower()


def tab_counts(clients: List[Dict[str, Any]]) -> Dict[str, int]:
    return {
        tab: len(clients) if status is None else sum(1 for c in clients if c.get("status") == status)
        for tab, status in DIRECTORY_TABS.items()
    }


def filter_clients(clients: Iterable[Dict[str, Any]], tab: str = "Tous", q: str = "") -> List[Dict[str, Any]]:
    status = DIRECTORY_TABS.get(tab)
    needle = (q or "").lower()
    return [
        c for c in clients
        if (status is None or c.get("status") == status) and _contains(c.get("name"), needle)
    ]


def search_clients(clients: Iterable[Dict[str, Any]], q: str, limit: int = 5) -> List[Dict[str, Any]]:
    """Dashboard quick search: name contains, first ``limit`` hits."""
    if not (q or "").strip():
        return []
    return filter_clients(clients, q=q)[:limit]


def filter_tasks(tasks: Iterable[Dict[str, Any]], tab: Optional[str] = "en-cours", q: str = "") -> List[Dict[str, Any]]:
    """``en-cours`` keeps every task not completed, ``termine`` the completed ones, ``None`` all."""
    needle = (q or "").lower()
    out = []
    for t in tasks:
        done = t.get("status") == "completed"
        if tab is not None and (tab == "termine") != done:
            continue
        if _contains(t.get("title"), needle) or _contains(t.get("subtitle"), needle):
            out.append(t)
    return out


def filter_projects(projects: Iterable[Dict[str, Any]], q: str = "") -> List[Dict[str, Any]]:
    needle = (q or "").lower()
    return [p for p in projects if _contains(p.get("project_name"), needle) or _contains(p.get("client_name"), needle)]


def filter_articles(articles: Iterable[Dict[str, Any]], q: str = "", fields=("famille", "rubrique", "descriptif")) -> List[Dict[str, Any]]:
    needle = (q or "").strip().lower()
    if not needle:
        return list(articles)
    return [a for a in articles if any(_contains(a.get(f), needle) for f in fields)]


def newest_first(docs: Iterable[Dict[str, Any]], key: str) -> List[Dict[str, Any]]:
    """Sort on a timestamp field, documents without one last."""
    return sorted(docs, key=lambda d: (d.get(key) is not None, d.get(key) or 0), reverse=True)
