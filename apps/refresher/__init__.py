"""
Refresher App - Who's-On Snapshot Refresh

Responsibilities:
- Scheduled execution (cron via APScheduler) or a single RUN_ONCE pass
- Paginated who's-on fetch from Shiftboard with shift grouping
- Cache the client-facing snapshot in Redis with an expiry
- Publish a refresh event with telemetry on Redis Pub/Sub

Output:
- Redis key REDIS_SNAPSHOT_KEY = {"result": <snapshot>}
- Redis event: channel=REDIS_CHANNEL_REFRESH, payload={type, key, partial, metrics, ts}
"""
