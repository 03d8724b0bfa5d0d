"""Process-local rate limiters for the guest trial and checkout endpoints."""

import re

PRUNE_THRESHOLD = 1024


def prune_expired_trial_records(store, now_ts):
    expired = [key for key, record in store.items() if now_ts > record['reset_at']]
    for key in expired:
        del store[key]
    return len(expired)


def check_trial_limit(key, *, store, lock, limit, window_seconds, time_module, prune_threshold=PRUNE_THRESHOLD):
    """Fixed window per key, reset lazily by the first call after expiry.

    Expired keys from other clients are swept once the store reaches prune_threshold.

    Returns (allowed, retry_after_seconds).
    """
    now_ts = time_module.time()
    with lock:
        if len(store) >= prune_threshold:
            prune_expired_trial_records(store, now_ts)
        record = store.get(key)
        if record is None or now_ts > record['reset_at']:
            store[key] = {'count': 1, 'reset_at': now_ts + window_seconds}
            return True, 0
        if record['count'] >= limit:
            return False, max(1, int(record['reset_at'] - now_ts))
        record['count'] += 1
        return True, 0


def check_rate_limit(key, limit, window_seconds, *, in_memory_events, in_memory_lock, time_module, prune_threshold=PRUNE_THRESHOLD):
    """Sliding window over recorded timestamps. Returns (allowed, retry_after_seconds)."""
    now_ts = time_module.time()
    with in_memory_lock:
        timestamps = in_memory_events.get(key, [])
        cutoff = now_ts - window_seconds
        if len(in_memory_events) >= prune_threshold:
            stale = [k for k, events in in_memory_events.items() if not events or events[-1] < cutoff]
            for stale_key in stale:
                del in_memory_events[stale_key]
        kept = [ts for ts in timestamps if ts >= cutoff]
        if len(kept) >= limit:
            oldest = kept[0]
            retry_after = max(1, int((oldest + window_seconds) - now_ts))
            in_memory_events[key] = kept
            return False, retry_after
        kept.append(now_ts)
        in_memory_events[key] = kept

    return True, 0


def normalize_rate_limit_key_part(value, fallback='anon', max_len=120):
    raw = str(value or '').strip().lower()
    if not raw:
        return fallback
    safe = re.sub(r'[^a-z0-9_.:@-]+', '_', raw)
    return safe[:max_len] if safe else fallback


def resolve_client_ip(request):
    forwarded = str(request.headers.get('X-Forwarded-For', '') or '').split(',')[0].strip()
    if forwarded:
        return forwarded
    real_ip = str(request.headers.get('X-Real-IP', '') or '').strip()
    if real_ip:
        return real_ip
    return request.remote_addr or 'unknown'
