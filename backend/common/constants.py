"""Shared constants for the catalogue services."""

DEFAULT_DUPLICATE_CANDIDATES_LIMIT = 20
DEFAULT_SIMILAR_MATCHES_LIMIT = 5
DEFAULT_DUPLICATE_LIST_LIMIT = 50
MAX_DUPLICATE_LIST_LIMIT = 100
DEFAULT_SCAN_INTERVAL_SECONDS = 3600

# Separator between the timestamp and the id inside a listing cursor
CURSOR_SEPARATOR = "|"
