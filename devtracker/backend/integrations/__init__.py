"""
External integrations for the developer tracker.

- Tracker API (bearer-authenticated HTTP client used by the ingestion worker)
"""
