"""
API endpoint constants and configuration.

This module contains the persistence and image service endpoint paths.
Centralizing these values makes it easy to swap out endpoints or update API versions.
"""


class PersistenceAPIEndpoints:
    """Persistence API endpoint paths."""

    # Base paths
    RANCHES_BASE = "/ranches"

    # Ranch endpoints
    RANCHES = f"{RANCHES_BASE}/"
    RANCH_BY_ID = f"{RANCHES_BASE}/{{ranch_id}}"
    ANIMAL_COUNT = f"{RANCHES_BASE}/{{ranch_id}}/animals/count"
    PRODUCTION_SUMMARY = f"{RANCHES_BASE}/{{ranch_id}}/production/summary"
    EVENTS = f"{RANCHES_BASE}/{{ranch_id}}/events"
    ALERT_COUNT = f"{RANCHES_BASE}/{{ranch_id}}/events/count"

    @classmethod
    def ranch(cls, ranch_id: str) -> str:
        return cls.RANCH_BY_ID.format(ranch_id=ranch_id)

    @classmethod
    def animal_count(cls, ranch_id: str) -> str:
        return cls.ANIMAL_COUNT.format(ranch_id=ranch_id)

    @classmethod
    def production_summary(cls, ranch_id: str) -> str:
        return cls.PRODUCTION_SUMMARY.format(ranch_id=ranch_id)

    @classmethod
    def events(cls, ranch_id: str) -> str:
        return cls.EVENTS.format(ranch_id=ranch_id)

    @classmethod
    def alert_count(cls, ranch_id: str) -> str:
        return cls.ALERT_COUNT.format(ranch_id=ranch_id)


class ImageAPIEndpoints:
    """Image service endpoint paths."""

    PROCESS = "/images/process"
    FILES = "/files/{path}"


# API Configuration Constants
class APIConstants:
    """General API configuration constants."""

    # HTTP Headers
    CONTENT_TYPE_JSON = "application/json"

    # Optimistic concurrency header carried on ranch saves
    IF_MATCH_HEADER = "If-Match"
