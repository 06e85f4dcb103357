"""Internal constants shared across the library."""

API_URL = "https://graph.tractive.com/4"
CHANNEL_URL = "https://channel.tractive.com/3/channel"
USER_AGENT = "pytractive"

# ------------------------------------------------------------------
# Scheduling
# ------------------------------------------------------------------

POLL_INTERVAL = 30 * 60
HEARTBEAT_CHECK_INTERVAL = 15
REGISTER_DELAY = 1.0

# ------------------------------------------------------------------
# Heartbeat thresholds (seconds since last keep-alive)
# ------------------------------------------------------------------

HEARTBEAT_HEALTHY_MAX = 10
HEARTBEAT_SUSPECT_MIN = 60
HEARTBEAT_SUSPECT_MAX = 75

RESTART_REQUIRED_REASON = "Restart required"

STREAM_WARNING_CODE = "stream_reconnecting"
STREAM_WARNING_MESSAGE = "Connection to Tractive lost, reconnecting"

# ------------------------------------------------------------------
# Tracker state reasons that raise a user-visible warning
# ------------------------------------------------------------------

WARNING_MESSAGES: dict[str, str] = {
    "not_reporting": "Tracker is not reporting",
    "out_of_battery": "Tracker is out of battery",
    "shutdown_by_user": "Tracker was shut down",
}

# ------------------------------------------------------------------
# Product names
# ------------------------------------------------------------------

UNKNOWN_PRODUCT_NAME = "-"

PRODUCT_NAMES_BY_SKU: dict[str, str] = {
    "TRATR1": "Tractive GPS",
    "TRNJA4": "Tractive GPS DOG 4",
    "TRCAT4": "Tractive GPS CAT 4",
    "TRDOG4XL": "Tractive GPS DOG XL",
    "TRMIN1": "Tractive GPS CAT Mini",
    "TRDOG6": "Tractive GPS DOG 6",
    "TRCAT6": "Tractive GPS CAT 6",
}

PRODUCT_NAMES_BY_MODEL: dict[str, str] = {
    "TG4410": "Tractive GPS 3G",
    "TG4420": "Tractive GPS DOG 4",
    "TG4422": "Tractive GPS DOG 4",
    "TG4424": "Tractive GPS CAT 4",
    "TG4430": "Tractive GPS DOG XL",
    "TG4480": "Tractive GPS CAT Mini",
    "TG4422_DOG4": "Tractive GPS DOG 4",
    "TG4424_CAT4": "Tractive GPS CAT 4",
    "TG5": "Tractive GPS DOG 6",
    "TG5_CAT6": "Tractive GPS CAT 6",
}
