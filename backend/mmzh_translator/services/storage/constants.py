"""Storage TTL and key prefix constants."""

# TTL constants (in seconds)
TTL_TRANSLATION = 86400  # 24 hours - default, overridden by settings.cache_ttl_seconds
TTL_HISTORY = 2592000  # 30 days - per-caller translation history

# Key prefixes - using Redis naming conventions
KEY_PREFIX_TRANSLATION = "translation"  # translation:{sha256(source_text)}
KEY_PREFIX_COOLDOWN = "cooldown"  # cooldown:{caller_id} -> last billable timestamp
KEY_PREFIX_HISTORY = "history"  # history:{caller_id} (list, newest first)
