"""Shared constants for statewalk workflows."""

DEFAULT_POLL_INTERVAL = 0.1

# Error names defined by the States language
STATES_ALL = "States.ALL"
STATES_TASK_FAILED = "States.TaskFailed"
STATES_TIMEOUT = "States.Timeout"
STATES_RUNTIME = "States.Runtime"
STATES_NO_CHOICE_MATCHED = "States.NoChoiceMatched"
STATES_EXCEED_TOLERATED_FAILURE_THRESHOLD = "States.ExceedToleratedFailureThreshold"

# Retrier defaults
DEFAULT_INTERVAL_SECONDS = 1
DEFAULT_MAX_ATTEMPTS = 3
DEFAULT_BACKOFF_RATE = 2.0

DOCKER_SCHEME = "docker://"
