"""Status package: enums, value types and exceptions for handling application state and errors.

This package defines:
    - Status: a StrEnum of possible application states
    - STATUS_MESSAGE: default user-facing messages per status
    - SyncState, SyncStatus: the outcome of the most recent sync attempt
    - Result: success/failure value returned by remote operations
    - BaseStatusException: base exception for status-driven error handling
    - Specific exceptions (e.g., TokenInvalidException) tagged with statuses
"""
