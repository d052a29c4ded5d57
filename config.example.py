# config.example.py

"""
Documentation-only module (safe to commit).

The real configuration is loaded from environment variables (optionally via a local .env file).
Use:
- .env (local, gitignored)

This file exists to make the repo self-documenting even without opening .env.example.
"""

ENV_VARS = {
    # App / logging
    "RELAY_APP_NAME": "App display name (default: tab-relay).",
    "RELAY_LOG_LEVEL": "Console logging level (default: INFO). The log file always gets DEBUG.",
    # HTTP server
    "RELAY_HOST": "Bind address of the relay API (default: 127.0.0.1).",
    "RELAY_PORT": "Port of the relay API (default: 3000).",
    # Paths (gitignored)
    "RELAY_DATA_DIR": "Local data directory, also holds server.log (default: .local/tab-relay).",
    "RELAY_SNAPSHOT_PATH": "Tab snapshot JSON path (default: <data_dir>/openedTabs.json).",
    # Dispatch
    "RELAY_TASK_TIMEOUT_SECONDS": "How long a submitter waits for the agent's report (default: 30).",
    # Agent
    "RELAY_API_BASE_URL": "Relay API URL the agent polls (default: http://localhost:3000).",
    "RELAY_POLL_INTERVAL_SECONDS": "Agent poll interval (default: 3).",
    "RELAY_HTTP_TIMEOUT_SECONDS": "Per-request timeout of the agent's HTTP client (default: 10).",
}
