"""
Dashboard seed data: financial KPIs and status overview cards per company.

Documents use deterministic ids ``<company_id>_<key>`` so seeding twice
overwrites instead of duplicating.
"""
import logging
from typing import Dict, List

from pymongo import ReplaceOne

logger = logging.getLogger(__name__)

KPIS = [
    {"key": "ca", "label": "CA Généré", "value": "53.456€", "target": "110.000€", "percentage": 65, "icon_name": "euro"},
    {"key": "marge", "label": "Marge générée", "value": "12.326€", "target": "15.000€", "percentage": 73, "icon_name": "search"},
    {"key": "taux_marge", "label": "Taux de marge", "value": "23,4%", "target": "35%", "percentage": 68, "icon_name": "file"},
    {"key": "taux_transfo", "label": "Taux de transformation", "value": "32,2%", "target": "33%", "percentage": 96, "icon_name": "user"},
]

STATUS_CARDS = [
    {"key": "leads", "label": "Leads", "count": 8, "color": "purple", "order": 1},
    {"key": "etudes", "label": "Etudes en cours", "count": 12, "color": "fuchsia", "order": 2},
    {"key": "commandes", "label": "Commandes clients", "count": 5, "color": "blue", "order": 3},
    {"key": "dossiers", "label": "Dossiers tech & install", "count": 14, "color": "cyan", "order": 4},
    {"key": "sav", "label": "SAV", "count": 3, "color": "orange", "order": 5},
]


def _replacements(company_id: str, items: List[Dict]) -> List[ReplaceOne]:
    ops = []
    for item in items:
        doc_id = f"{company_id}_{item['key']}"
        ops.append(ReplaceOne({"_id": doc_id}, {"_id": doc_id, **item, "company_id": company_id}, upsert=True))
    return ops


def seed_database(db, company_id: str = "default_company") -> Dict[str, int]:
    db["kpis"].bulk_write(_replacements(company_id, KPIS))
    db["status_overview"].bulk_write(_replacements(company_id, STATUS_CARDS))
    logger.info("Seeded dashboard for company %s", company_id)
    return {"kpis": len(KPIS), "status_cards": len(STATUS_CARDS)}
