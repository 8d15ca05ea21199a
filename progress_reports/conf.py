from django.conf import settings

DEFAULTS = {
    # Reports submitted concurrently per batch during bulk submission
    'BULK_BATCH_SIZE': 10,
    # Seconds before a single item's store work counts as a transient failure
    'STORE_TIMEOUT': 30.0,
    'EXPORT_DATETIME_FORMAT': '%Y-%m-%d %H:%M:%S',
}


def get_setting(name):
    """Read a PROGRESS_REPORTS setting, falling back to the app default"""
    if name not in DEFAULTS:
        raise KeyError(f"Unknown progress report setting: {name}")
    overrides = getattr(settings, 'PROGRESS_REPORTS', None) or {}
    return overrides.get(name, DEFAULTS[name])
