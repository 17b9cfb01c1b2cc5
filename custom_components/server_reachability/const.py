DOMAIN = "server_reachability"
VERSION = "0.3.0"

# Config entry keys
CONF_ENTRY_NAME = "entry_name"
CONF_BASE_URL = "base_url"
CONF_HEALTH_ENDPOINT = "health_endpoint"
CONF_INTERNET_CHECK_HOST = "internet_check_host"
CONF_GUID = "guid"

DEFAULT_ENTRY_NAME = "My Backend Server"
# Any cheap list endpoint works; only the HTTP status code is inspected.
DEFAULT_HEALTH_ENDPOINT = "api/categories"
HEALTH_QUERY_PARAMS = {"limit": "1"}

# Server probe (seconds)
PROBE_TIMEOUT = 8              # hard timeout, the request is cancelled after this
SERVER_CHECK_DEBOUNCE = 5      # minimum gap between two real probes
SERVER_ERROR_STATUS = 500      # HTTP status codes at or above this mean "server down"

# Device observer
OBSERVER_POLL_INTERVAL = 2     # seconds between host network reads while subscribed
ROUTE_PROBE_ADDRESS = "1.1.1.1"  # only used to resolve the default route, no packet is sent
ROUTE_PROBE_ADDRESS_V6 = "2606:4700:4700::1111"
ROUTE_PROBE_PORT = 53
INTERNET_CHECK_PORT = 443
INTERNET_CHECK_TIMEOUT = 3

# Presentation timers (seconds)
BANNER_OFFLINE_DELAY = 1
BANNER_SERVER_DELAY = 2
RETRY_GUARD_INTERVAL = 2

# Connection types reported by the device observer
CONNECTION_TYPE_WIFI = "wifi"
CONNECTION_TYPE_CELLULAR = "cellular"
CONNECTION_TYPE_ETHERNET = "ethernet"
CONNECTION_TYPE_OTHER = "other"
CONNECTION_TYPE_NONE = "none"
CONNECTION_TYPE_UNKNOWN = "unknown"

# Maps network interface name prefix → connection type.
# Checked in order, first match wins.
INTERFACE_PREFIX_TO_TYPE: tuple[tuple[str, str], ...] = (
    ("wlan", CONNECTION_TYPE_WIFI),
    ("wlp", CONNECTION_TYPE_WIFI),
    ("wl", CONNECTION_TYPE_WIFI),
    ("wwan", CONNECTION_TYPE_CELLULAR),
    ("rmnet", CONNECTION_TYPE_CELLULAR),
    ("ppp", CONNECTION_TYPE_CELLULAR),
    ("eth", CONNECTION_TYPE_ETHERNET),
    ("enp", CONNECTION_TYPE_ETHERNET),
    ("eno", CONNECTION_TYPE_ETHERNET),
    ("en", CONNECTION_TYPE_ETHERNET),
)

# Human readable failure reasons stored in NetworkSnapshot.server_error_message
MESSAGE_NO_INTERNET = "Unable to connect to the internet"
MESSAGE_SERVER_UNAVAILABLE = "Server is temporarily unavailable"
MESSAGE_SERVER_TIMEOUT = "Server did not respond in time"
MESSAGE_SERVER_UNRESOLVED = "Unable to resolve the server address"

# Banner texts shown by the presentation layer
BANNER_MESSAGES = {
    "offline": "No Internet Connection",
    "server_unavailable": "Server Unavailable",
}

# Home Assistant surfaces
EVENT_CONNECTION_RESTORED = f"{DOMAIN}_connection_restored"
SERVICE_REPORT_SERVER_STATUS = "report_server_status"
ATTR_REACHABLE = "reachable"
ATTR_MESSAGE = "message"
ATTR_ENTRY_ID = "entry_id"
