"""URL constants for qa domain."""

QA_BASE = "/qa"
QA_ASK = f"{QA_BASE}/ask"
