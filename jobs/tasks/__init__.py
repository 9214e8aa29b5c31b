"""Dramatiq actors for the cron stages."""

import jobs.broker  # noqa: F401  (actors bind to the Redis broker at import)
