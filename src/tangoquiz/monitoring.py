"""Monitoring configuration for the bot."""
from prometheus_client import Counter, Histogram, start_http_server

# Word management metrics
words_added = Counter(
    "tangoquiz_words_added_total",
    "Total number of words registered",
)

words_removed = Counter(
    "tangoquiz_words_removed_total",
    "Total number of words removed from the list",
)

# Quiz metrics
quiz_sessions = Counter(
    "tangoquiz_quiz_sessions_total",
    "Total number of quiz passes started",
    ["kind"],  # fresh, retry, day
)

answers_graded = Counter(
    "tangoquiz_answers_graded_total",
    "Total number of graded quiz answers",
    ["outcome"],  # correct, partial, incorrect
)

# Store metrics
store_errors = Counter(
    "tangoquiz_store_errors_total",
    "Total number of failed word store operations",
    ["operation"],
)

store_duration = Histogram(
    "tangoquiz_store_duration_seconds",
    "Duration of word store operations in seconds",
    ["operation"],
    buckets=[0.01, 0.05, 0.1, 0.5, 1.0, 5.0],
)


def start_monitoring(port: int = 9090) -> None:
    """Start the Prometheus metrics server."""
    start_http_server(port)
