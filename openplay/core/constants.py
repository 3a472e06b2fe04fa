"""Global constants for the openplay application."""

# Collection name
EVENTS_COLLECTION = "open_play_events"

# Poll options attached to every Open Play event
YES_OPTION = "Yes"
NO_OPTION = "No"
DEFAULT_OPTIONS = (YES_OPTION, NO_OPTION)

# Doubles
PLAYERS_PER_MATCH = 4
PLAYERS_PER_TEAM = 2

# Scheduling defaults, overridable through app config
DEFAULT_TOTAL_SLOTS = 6
DEFAULT_COURTS = 1
MIN_PLAYERS = 4
MAX_PLAYERS = 12

# Event fields
TOURNAMENT_TIERS = ("100", "250", "500")
DEFAULT_TOURNAMENT_TIER = "100"
EARLIEST_START_HOUR = 5
LATEST_END_HOUR = 22
MAX_SCORE_LENGTH = 50
