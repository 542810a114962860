"""
Substance lookup - cached, deduplicated, failure-isolated access to
PsychonautWiki and TripSit substance data.
"""
