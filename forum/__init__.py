"""Restaurant forum backend: user profiles, rankings and engagement toggles."""
