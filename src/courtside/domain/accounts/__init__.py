"""Identity resolution and the caller's account surface."""
