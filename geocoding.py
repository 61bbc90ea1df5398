"""
Address autocomplete against the Base Adresse Nationale (api-adresse.data.gouv.fr).
"""
import logging
import os
from typing import Any, Dict, List, Optional

import httpx

logger = logging.getLogger(__name__)

GEOCODER_URL = os.getenv("GEOCODER_URL", "https://api-adresse.data.gouv.fr/search/")
MIN_QUERY_LENGTH = 4
MAX_RESULTS = 5


def to_suggestion(feature: Dict[str, Any]) -> Dict[str, Any]:
    props = feature.get("properties") or {}
    coordinates = (feature.get("geometry") or {}).get("coordinates") or []
    # GeoJSON order is [lng, lat]
    lng = coordinates[0] if len(coordinates) > 0 else None
    lat = coordinates[1] if len(coordinates) > 1 else None
    return {
        "label": props.get("label"),
        "city": props.get("city"),
        "postcode": props.get("postcode"),
        "lat": lat,
        "lng": lng,
    }


def search_addresses(q: str, client: Optional[httpx.Client] = None) -> List[Dict[str, Any]]:
    """Up to five suggestions; failures are logged and give no suggestions."""
    if len(q or "") < MIN_QUERY_LENGTH:
        return []
    owns_client = client is None
    client = client or httpx.Client(timeout=5.0)
    try:
        response = client.get(GEOCODER_URL, params={"q": q, "limit": MAX_RESULTS})
        response.raise_for_status()
        body = response.json()
        if not isinstance(body, dict):
            raise ValueError(f"unexpected response body: {type(body).__name__}")
        features = [f for f in body.get("features") or [] if isinstance(f, dict)]
        return [to_suggestion(f) for f in features[:MAX_RESULTS]]
    except (httpx.HTTPError, ValueError, AttributeError, TypeError) as e:
        logger.warning("Address lookup failed for %r: %s", q, e)
        return []
    finally:
        if owns_client:
            client.close()
