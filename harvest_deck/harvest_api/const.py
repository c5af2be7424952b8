"""Constants for the Harvest API client."""

__version__ = "0.1.0"

BASE_URL = "https://api.harvestapp.com"
API_BASE = f"{BASE_URL}/v2"

TIME_ENTRIES_ENDPOINT = f"{API_BASE}/time_entries"
TIME_ENTRY_STOP_ENDPOINT = f"{API_BASE}/time_entries/{{entry_id}}/stop"

HEADER_ACCOUNT_ID = "Harvest-Account-ID"
USER_AGENT = f"harvest-deck/{__version__} (Stream Deck plugin)"

PER_PAGE = 100

# Harvest allows 100 general API requests per 15 seconds.
DEFAULT_THROTTLE_SECONDS = 0.15
DEFAULT_TIMEOUT_SECONDS = 30.0
