"""Background jobs: dramatiq actors and the cron scheduler."""
