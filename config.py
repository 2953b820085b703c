"""F1 Kiosk - Configuration

Static defaults for the rotating race dashboard. Anything an operator
is expected to change lives in dashboard.yaml; this module holds the
built-in fallbacks and the reference tables the API doesn't provide.

Times are in milliseconds when they belong to the capability/preference
documents (they're shared with the browser), seconds everywhere else.
"""

APP_ID = "f1-dashboard"

# ---------------------------------------------------------------------------
# Card types, in the order a fresh install shows them
# ---------------------------------------------------------------------------
CARD_LABELS = {
    "schedule": "Race Schedule",
    "drivers": "Driver Standings",
    "constructors": "Constructor Standings",
    "previousRace": "Previous Race",
    "nextRace": "Next Race",
    "driverCard": "Driver Card",
    "teamCard": "Team Card",
}

# ---------------------------------------------------------------------------
# Built-in capability document (used when dashboard.yaml or the upstream
# server can't be read)
# ---------------------------------------------------------------------------
DEFAULT_CAPABILITIES = {
    "availableCards": [
        {"id": card_id, "label": label, "enabled": True}
        for card_id, label in CARD_LABELS.items()
    ],
    "intervalRange": {"min": 5000, "max": 60000, "default": 10000},
    "itemsPerPage": {"schedule": 10, "drivers": 11, "constructors": 11},
    "features": {
        "allowReordering": True,
        "allowIntervalChange": True,
        "showPreferenceMenu": True,
    },
}

# ---------------------------------------------------------------------------
# Files
# ---------------------------------------------------------------------------
DASHBOARD_CONFIG = "dashboard.yaml"
PREFERENCES_FILE = "preferences.json"

# ---------------------------------------------------------------------------
# Upstream race data (OpenF1)
# ---------------------------------------------------------------------------
OPENF1_BASE_URL = "https://api.openf1.org/v1"
DATA_REFRESH_INTERVAL = 30 * 60   # seconds
REQUEST_TIMEOUT = 15              # seconds
THROTTLE_DELAY = 0.3              # seconds between sequential API calls
FETCH_RETRIES = 3
RETRY_BASE_DELAY = 1.0            # seconds, doubled per attempt

# A meeting's date_start is the Friday; the race is two days later.
RACE_WEEKEND_DAYS = 2

# Sprint rounds for the current season. Overridden by `sprint_weekends`
# in dashboard.yaml.
SPRINT_WEEKENDS = [
    "Chinese GP",
    "Miami GP",
    "Belgian GP",
    "United States GP",
    "São Paulo GP",
    "Qatar GP",
]

# ---------------------------------------------------------------------------
# Real-time channel
# ---------------------------------------------------------------------------
WS_PORT = 5001
WS_PATH = "/ws"
HEARTBEAT_INTERVAL = 30      # seconds between server pings
HEARTBEAT_TIMEOUT = 10       # seconds to wait for a pong
RECONNECT_BASE_DELAY = 1.0   # seconds
RECONNECT_MAX_DELAY = 30.0   # seconds

# ---------------------------------------------------------------------------
# Team colours (fallback when the API doesn't send one)
# ---------------------------------------------------------------------------
DEFAULT_TEAM_COLOR = "#666666"

TEAM_COLORS = {
    "Red Bull Racing": "#3671C6",
    "McLaren": "#FF8000",
    "Ferrari": "#E8002D",
    "Mercedes": "#27F4D2",
    "Aston Martin": "#229971",
    "Alpine": "#FF87BC",
    "Williams": "#64C4FF",
    "RB": "#6692FF",
    "Racing Bulls": "#6692FF",
    "Visa Cash App RB": "#6692FF",
    "Kick Sauber": "#52E252",
    "Haas F1 Team": "#B6BABD",
}

# ---------------------------------------------------------------------------
# Static profiles -- details the API doesn't carry
# ---------------------------------------------------------------------------
DRIVER_PROFILES = {
    1: {
        "date_of_birth": "1997-09-30",
        "birthplace": "Hasselt, Belgium",
        "nationality": "Dutch",
        "manager": "Raymond Vermeulen",
        "engineer": "Gianpiero Lambiase",
    },
    4: {
        "date_of_birth": "1999-11-13",
        "birthplace": "Bristol, UK",
        "nationality": "British",
        "engineer": "Will Joseph",
    },
    16: {
        "date_of_birth": "1997-10-16",
        "birthplace": "Monte Carlo, Monaco",
        "nationality": "Monegasque",
        "engineer": "Bryan Bozzi",
    },
    44: {
        "date_of_birth": "1985-01-07",
        "birthplace": "Stevenage, UK",
        "nationality": "British",
        "physio": "Angela Cullen",
        "engineer": "Riccardo Adami",
    },
    63: {
        "date_of_birth": "1998-02-15",
        "birthplace": "King's Lynn, UK",
        "nationality": "British",
        "engineer": "Marcus Dudley",
    },
    81: {
        "date_of_birth": "2001-04-06",
        "birthplace": "Melbourne, Australia",
        "nationality": "Australian",
        "engineer": "Tom Stallard",
    },
}

TEAM_PROFILES = {
    "Red Bull Racing": {
        "full_name": "Oracle Red Bull Racing",
        "base": "Milton Keynes, UK",
        "team_principal": "Christian Horner",
        "technical_director": "Pierre Waché",
        "power_unit": "Honda RBPT",
        "first_entry": 2005,
        "championships": 6,
    },
    "McLaren": {
        "full_name": "McLaren Formula 1 Team",
        "base": "Woking, UK",
        "team_principal": "Andrea Stella",
        "technical_director": "Peter Prodromou",
        "power_unit": "Mercedes",
        "first_entry": 1966,
        "championships": 9,
    },
    "Ferrari": {
        "full_name": "Scuderia Ferrari",
        "base": "Maranello, Italy",
        "team_principal": "Frédéric Vasseur",
        "power_unit": "Ferrari",
        "first_entry": 1950,
        "championships": 16,
    },
    "Mercedes": {
        "full_name": "Mercedes-AMG Petronas F1 Team",
        "base": "Brackley, UK",
        "team_principal": "Toto Wolff",
        "technical_director": "James Allison",
        "power_unit": "Mercedes",
        "first_entry": 2010,
        "championships": 8,
    },
}
