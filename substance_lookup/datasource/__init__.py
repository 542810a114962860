"""
Substance sources: PsychonautWiki, TripSit and the combined lookup.
"""

from substance_lookup.datasource.base import BaseSubstanceSource
from substance_lookup.datasource.lookup import SubstanceLookup
from substance_lookup.datasource.models import (
    Interaction,
    Interactions,
    PsychonautRecord,
    SubstanceRecord,
    TripSitRecord,
    parse_psychonaut_substance,
    parse_tripsit_drug,
)
from substance_lookup.datasource.psychonaut import PsychonautClient
from substance_lookup.datasource.tripsit import TripSitClient

__all__ = [
    "BaseSubstanceSource",
    "SubstanceLookup",
    "Interaction",
    "Interactions",
    "PsychonautRecord",
    "SubstanceRecord",
    "TripSitRecord",
    "parse_psychonaut_substance",
    "parse_tripsit_drug",
    "PsychonautClient",
    "TripSitClient",
]
