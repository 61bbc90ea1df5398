"""
Lead origin hierarchy: category → origin → sub-origin.

The lead and project forms cascade through these three levels. Unknown keys
simply produce empty choice lists.
"""
from typing import Dict, List

HIERARCHY: Dict[str, Dict[str, List[str]]] = {
    "Actif commercial": {
        "Prospection terrain": ["Porte-à-porte", "Tour de chantier"],
        "Relance fichier": ["Anciens devis", "Clients perdus", "SAV"],
        "Parrainage": ["Bon de parrainage", "Spontanée"],
        "Prescripteur": ["Artisan partenaire", "Architecte", "Courtier", "Décorateur"],
        "Démarchage téléphonique": ["Appel froid", "Suivi salon", "Relance mailing"],
    },
    "Notoriété": {
        "Bouche-à-oreille": ["Famille/ami", "Voisin"],
        "Recommandation spontanée": ["Sans lien identifié"],
        "Ancien client": ["Autre projet", "Retour suite SAV"],
        "Avis en ligne": ["Google", "PagesJaunes", "Site d’avis"],
    },
    "Marketing": {
        "Publicité digitale": ["Google Ads", "Facebook Ads", "Instagram Ads", "Retargeting"],
        "Site web": ["Formulaire contact", "Prise de RDV en ligne", "Chatbot"],
        "Emailing": ["Newsletter", "Email promo", "Relance devis automatique"],
        "SMS marketing": ["Campagne promo", "Relance devis"],
        "Réseaux sociaux": ["Facebook perso", "Instagram", "TikTok", "Live", "Story promo"],
        "Affichage": ["Panneau pub", "Abribus", "Panneau chantier", "Véhicule floqué"],
        "Média traditionnel": ["Magazine", "Journal gratuit", "Publication pro", "Radio"],
        "Événementiel": ["Salon", "Foire"],
        "Réseaux pro": ["BNI", "Club entrepreneurs", "Groupement métiers"],
        "Événement magasin": ["Portes ouvertes", "Inauguration", "Anniversaire showroom"],
    },
    "Magasin": {
        "Passage magasin": ["Sans RDV"],
        "Vitrine": ["Promo vitrine", "PLV"],
        "Référencement local": ["Google Maps", "PagesJaunes", "GPS", "Plan local"],
        "Bouche-à-oreille local": ["Habitant quartier", "Voisinage proche"],
    },
    "Autres": {
        "Carte de visite": ["Récupérée événement", "Posée en magasin"],
        "Opportunité": ["Spontanée"],
        "Autre": ["À préciser"],
    },
}


def categories() -> List[str]:
    return list(HIERARCHY)


def origins_for(category: str) -> List[str]:
    if not category:
        return []
    return list(HIERARCHY.get(category, {}))


def sub_origins_for(category: str, origin: str) -> List[str]:
    if not category or not origin:
        return []
    return list(HIERARCHY.get(category, {}).get(origin, []))


def validate_origin(category: str, origin: str, sub_origin: str = "") -> None:
    """Raise ``ValueError`` when a chosen level does not belong to its parent.

    Empty levels are allowed: a lead may be saved before its origin is known,
    but a sub-origin is never accepted without its origin.
    """
    if category and category not in HIERARCHY:
        raise ValueError(f"Unknown category: {category}")
    if origin:
        if not category:
            raise ValueError("An origin requires a category")
        if origin not in HIERARCHY[category]:
            raise ValueError(f"Origin {origin!r} does not belong to {category!r}")
    if sub_origin:
        if not origin:
            raise ValueError("A sub-origin requires an origin")
        if sub_origin not in HIERARCHY[category][origin]:
            raise ValueError(f"Sub-origin {sub_origin!r} does not belong to {origin!r}")
