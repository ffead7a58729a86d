"""
Prometheus-based metrics for production monitoring.
Provides /metrics endpoint for scraping.
"""
from prometheus_client import Counter, Histogram, Gauge, generate_latest, CONTENT_TYPE_LATEST
from fastapi import APIRouter, Response


# Counters
access_decisions_total = Counter(
    "access_decisions_total",
    "Access policy decisions",
    ["unit", "outcome"],  # unit: manhwa|chapter; outcome: allowed|VIP_ONLY|EARLY_ACCESS
)

role_lookups_total = Counter(
    "role_lookups_total",
    "Viewer role resolutions by source",
    ["source"],  # anonymous, cache, db, fallback
)

identity_provider_requests_total = Counter(
    "identity_provider_requests_total",
    "Total identity provider token verifications",
    ["status"],
)

ratings_submitted_total = Counter(
    "ratings_submitted_total",
    "Total ratings submitted",
)

chapters_published_total = Counter(
    "chapters_published_total",
    "Chapter publish/schedule actions",
    ["action"],
)

comments_total = Counter(
    "comments_total",
    "Comments created and deleted",
    ["target", "action"],  # target: manhwa|chapter; action: create|delete
)

circuit_breaker_state = Gauge(
    "circuit_breaker_state",
    "Circuit breaker state (0=closed, 1=open)",
    ["name"],
)

# Histograms
identity_provider_request_duration_seconds = Histogram(
    "identity_provider_request_duration_seconds",
    "Identity provider request duration",
    buckets=[0.05, 0.1, 0.25, 0.5, 1, 2, 5],
)


# Metrics endpoint router
router = APIRouter()


@router.get("/metrics")
def metrics_endpoint() -> Response:
    """Prometheus metrics endpoint for scraping."""
    return Response(
        content=generate_latest(),
        media_type=CONTENT_TYPE_LATEST,
    )
