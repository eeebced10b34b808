"""URL constants for accounts domain."""

ACCOUNT_PROFILE = "/me"
