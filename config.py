"""
RSU beacon monitor configuration.
"""

# RSU listener
SERVER_CONFIG = {
    "host": "0.0.0.0",        # Listen on all interfaces
    "port": 5000,             # Well-known beacon port
    "protocol": "udp",
    "buffer_size": 4096,      # Max datagram bytes per receive
    "poll_interval_s": 0.5,   # Receive wake-up for shutdown checks
}

# V2V proximity warnings
PROXIMITY_CONFIG = {
    "danger_distance_m": 8.0,
    "warn_distance_m": 15.0,
    "earth_radius_m": 6371000.0,
}

# Session aggregation and presenter handoff
SESSION_CONFIG = {
    "summary_every": 50,      # Summary every N received beacons
    "queue_size": 100,        # Presenter snapshot queue capacity
}

# Structured + raw log files
LOG_SINK_CONFIG = {
    "enabled": True,
    "directory": "rsu_logs",
    "csv_prefix": "rsu_log",
    "raw_prefix": "rsu_raw",
}

# Console output
OUTPUT_CONFIG = {
    "enable_console_print": True,
    "print_interval_s": 1.0,  # Minimum time between peer table prints
    "print_metrics_on_exit": True,
}

# Logging
LOGGING_CONFIG = {
    "level": "INFO",
    "format": "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
}

# Peer role: beacon transmitter with a virtual position source
BEACON_CONFIG = {
    "rsu_host": "127.0.0.1",
    "port": 5000,
    "interval_ms": 500,
    "virtual_position": {
        "base_lat": 48.137100,
        "base_lon": 11.575400,
        "speed_kmh": 20.0,
        "heading_deg": 90.0,
        "accuracy_m": 3.0,
    },
}
