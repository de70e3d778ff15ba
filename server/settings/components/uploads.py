"""Upload orchestration settings."""

from server.settings.components import config

# Files below this size get a single presigned PUT URL
FILES_MULTIPART_THRESHOLD = config(
    'FILES_MULTIPART_THRESHOLD',
    cast=int,
    default=100 * 1024 * 1024,
)

# Object store ceiling for parts in one multipart upload
FILES_MAX_PARTS = config('FILES_MAX_PARTS', cast=int, default=10000)

# Requests declaring more than this are rejected early
FILES_MAX_FILE_SIZE = config(
    'FILES_MAX_FILE_SIZE',
    cast=int,
    default=1024 * 1024 * 1024 * 1024,
)

# Presigned URL lifetimes, in seconds
FILES_UPLOAD_URL_TTL = config('FILES_UPLOAD_URL_TTL', cast=int, default=900)
FILES_PART_URL_TTL = config('FILES_PART_URL_TTL', cast=int, default=86400)
FILES_DOWNLOAD_URL_TTL = config(
    'FILES_DOWNLOAD_URL_TTL',
    cast=int,
    default=900,
)

# Whether only the owner may obtain a download URL
FILES_DOWNLOAD_REQUIRES_OWNER = config(
    'FILES_DOWNLOAD_REQUIRES_OWNER',
    cast=bool,
    default=False,
)

# Unfinished uploads idle for longer than this get abandoned (seconds)
FILES_UPLOAD_STALE_AFTER = config(
    'FILES_UPLOAD_STALE_AFTER',
    cast=int,
    default=7 * 24 * 60 * 60,
)
