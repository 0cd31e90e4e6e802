"""
Prometheus Metrics for the configurator service.
"""

from prometheus_client import Counter, Gauge, Histogram

# API metrics
HTTP_REQUESTS_TOTAL = Counter(
    'http_requests_total',
    'Total HTTP requests',
    ['method', 'endpoint', 'status_code']
)

HTTP_REQUEST_DURATION = Histogram(
    'http_request_duration_seconds',
    'HTTP request duration in seconds',
    ['method', 'endpoint'],
    buckets=[0.005, 0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0]
)

# Upstream catalog API metrics
CATALOG_UPSTREAM_REQUESTS = Counter(
    'catalog_upstream_requests_total',
    'Requests sent to the upstream catalog API',
    ['method', 'resource', 'status']  # status: HTTP code, error, rejected
)

CATALOG_UPSTREAM_DURATION = Histogram(
    'catalog_upstream_request_duration_seconds',
    'Upstream catalog API request duration',
    ['resource'],
    buckets=[0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0]
)

CATALOG_CACHE_LOOKUPS = Counter(
    'catalog_cache_lookups_total',
    'Catalog cache lookups',
    ['kind', 'result']  # result: hit, miss
)

# Snapshot metrics
CATALOG_REFRESH_TOTAL = Counter(
    'catalog_refresh_total',
    'Catalog refreshes',
    ['status']  # applied, stale, error
)

CATALOG_STALE_SNAPSHOTS = Counter(
    'catalog_stale_snapshots_total',
    'Snapshots discarded because a newer one was already installed'
)

# Configurator metrics
ACTIVE_SESSIONS = Gauge(
    'configurator_active_sessions',
    'Configurator sessions currently held in memory'
)

CART_OPERATIONS = Counter(
    'configurator_cart_operations_total',
    'Cart mutations',
    ['operation']  # add_product, remove_product, set_product_quantity, ...
)

PRESET_APPLICATIONS = Counter(
    'configurator_preset_applications_total',
    'Style presets applied to carts',
    ['preset_id']
)
