"""
Catalog article import/export.

Supplier price lists arrive as semicolon separated text exported from a
spreadsheet:

    Métier;Rubrique;Famille;Collection;Descriptif;Prix mini TTC;Prix maxi TTC

Section separator lines start with ``;;`` and are skipped, as is the header.
"""
import csv
import io
import re
from typing import Any, Dict, Iterable, List

MAX_IMPORT_ROWS = 490
HEADER = ["Métier", "Rubrique", "Famille", "Collection", "Descriptif", "Prix mini TTC", "Prix maxi TTC"]

_NUMBER = re.compile(r"\d+(?:\.\d*)?|\.\d+")


def parse_price(value: str) -> float:
    """Read a price such as ``1 299,00 €``; anything unreadable is 0."""
    if not value:
        return 0.0
    cleaned = re.sub(r"[^\d.,]", "", value).replace(",", ".", 1)
    match = _NUMBER.match(cleaned)
    return float(match.group()) if match else 0.0


def parse_catalog(text: str, limit: int = MAX_IMPORT_ROWS) -> List[Dict[str, Any]]:
    rows = []
    for raw in text.splitlines():
        line = raw.strip()
        if not line or line.startswith(";;") or "métier;rubrique" in line.lower():
            continue
        cols = line.split(";")
        if len(cols) < 6:
            continue
        cols = [c.strip() for c in cols]
        metier, rubrique, famille, collection, descriptif = cols[:5]
        if not famille and not descriptif:
            continue
        rows.append({
            "metier": metier or "Cuisine",
            "rubrique": rubrique or "Général",
            "famille": famille or "Non classé",
            "collection": collection,
            "descriptif": descriptif,
            "prix_mini_ttc": parse_price(cols[5]),
            "prix_maxi_ttc": parse_price(cols[6]) if len(cols) > 6 else 0.0,
        })
        if len(rows) >= limit:
            break
    return rows


def export_catalog(articles: Iterable[Dict[str, Any]]) -> str:
    output = io.StringIO()
    writer = csv.writer(output, delimiter=";", lineterminator="\n")
    writer.writerow(HEADER)
    for a in articles:
        writer.writerow([
            a.get("metier", ""), a.get("rubrique", ""), a.get("famille", ""), a.get("collection", ""),
            a.get("descriptif", ""), f"{a.get('prix_mini_ttc', 0):.2f}", f"{a.get('prix_maxi_ttc', 0):.2f}",
        ])
    return output.getvalue()


def price_totals(articles: Iterable[Dict[str, Any]]) -> Dict[str, float]:
    articles = list(articles)
    return {
        "count": len(articles),
        "prix_mini_ttc": round(sum(a.get("prix_mini_ttc") or 0 for a in articles), 2),
        "prix_maxi_ttc": round(sum(a.get("prix_maxi_ttc") or 0 for a in articles), 2),
    }
