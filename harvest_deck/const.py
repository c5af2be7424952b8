"""Constants for the Harvest Stream Deck plugin."""

from typing import Final

PLUGIN_UUID: Final = "com.wolfzoo.harvest"

# Settings keys, as written by the property inspector
CONF_TYPE: Final = "type"
CONF_ACCOUNT_ID: Final = "accountId"
CONF_ACCESS_TOKEN: Final = "accessToken"
CONF_LABEL: Final = "label"
CONF_PROJECT_ID: Final = "projectId"
CONF_TASK_ID: Final = "taskId"
CONF_CLIENT_ID: Final = "clientId"

# Button kinds (values of the "type" setting)
TYPE_TIMER: Final = "timer"
TYPE_DAILY: Final = "daily"
TYPE_WEEKLY: Final = "weekly"
TYPE_PROJECT: Final = "project"
TYPE_CLIENT: Final = "client"

# Polling cadence
DEFAULT_POLL_INTERVAL_SECONDS: Final = 10.0
# A requested refresh is dropped when the periodic one is due this soon
DEFAULT_REFRESH_GRACE_SECONDS: Final = 2.0
DEFAULT_REFRESH_DELAY_SECONDS: Final = 1.0

# Title layout
LINE_BREAK_TOKEN: Final = "<NL>"
MAX_LINE_BREAKS: Final = 3
TIMER_SEPARATOR: Final = "\n\n"
TOTALS_SEPARATOR: Final = "\n"
ERROR_LABEL: Final = "ERROR"

# Manifest state slots
STATE_IDLE: Final = 0
STATE_ACTIVE: Final = 1

ENV_LOG_LEVEL: Final = "HARVEST_DECK_LOG_LEVEL"
