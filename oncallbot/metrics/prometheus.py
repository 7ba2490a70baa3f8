# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Prometheus metrics: single source of truth for all metric objects.
Imported by services and middleware. Never instantiated in controllers.
"""

from prometheus_client import Counter, Gauge, Histogram

# ── HTTP Metrics (used by middleware) ──
REQUEST_COUNT = Counter(
    "oncall_bot_requests_total",
    "Total HTTP requests to the on-call bot",
    ["method", "endpoint", "status"],
)
REQUEST_LATENCY = Histogram(
    "oncall_bot_request_duration_seconds",
    "Request latency in seconds",
    ["method", "endpoint"],
)
HTTP_ERRORS = Counter(
    "oncall_bot_http_errors_total",
    "Total HTTP error responses",
    ["method", "endpoint", "status"],
)

# ── Command Metrics (updated by service layer only) ──
COMMANDS_TOTAL = Counter(
    "oncall_bot_commands_total",
    "Slash-command operations by outcome",
    ["operation", "outcome"],
)
COMMAND_LATENCY = Histogram(
    "oncall_bot_command_duration_seconds",
    "Time to execute one slash-command operation",
    ["operation"],
)
PERSIST_FAILURES = Counter(
    "oncall_bot_persist_failures_total",
    "Durable-store writes that failed and were rolled back in memory",
    ["operation"],
)
SELF_HEAL_PRUNES = Counter(
    "oncall_bot_self_heal_prunes_total",
    "Managers and rotation entries dropped because their Slack account is gone",
    ["kind"],
)
TEAMS_REGISTERED = Gauge(
    "oncall_bot_teams_registered",
    "Number of teams managed by the bot",
)

# ── Identity Metrics ──
IDENTITY_CACHE_LOOKUPS = Counter(
    "oncall_bot_identity_cache_lookups_total",
    "Identity cache lookups by result",
    ["result"],
)
IDENTITY_CACHE_SIZE = Gauge(
    "oncall_bot_identity_cache_size",
    "Number of Slack identities currently cached",
)
SLACK_API_CALLS = Counter(
    "oncall_bot_slack_api_calls_total",
    "Slack Web API calls by method and status",
    ["method", "status"],
)
