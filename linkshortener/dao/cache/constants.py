from linkshortener.constants import TTL, Defaults


# Hot cache defaults
HOT_TTL = TTL.HOT_CACHE  # 1 hour
HOT_MAX_SIZE = Defaults.CACHE_MAX_SIZE
SWEEP_INTERVAL = Defaults.CACHE_SWEEP_INTERVAL  # 5 minutes
