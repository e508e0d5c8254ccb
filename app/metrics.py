from prometheus_client import Counter, Histogram, Gauge, generate_latest, CONTENT_TYPE_LATEST

# Crawl Metrics
crawl_requests_total = Counter("wadcatalog_crawl_requests_total", "Total idGames API requests", ["outcome"])

crawl_errors_total = Counter("wadcatalog_crawl_errors_total", "Crawl errors by kind", ["kind"])

crawl_current_id = Gauge("wadcatalog_crawl_current_id", "File ID most recently requested")

ACTIVE_CRAWLS = Gauge("wadcatalog_active_crawls", "Number of crawls in progress")

# Container Metrics
extraction_duration_seconds = Histogram(
    "wadcatalog_extraction_duration_seconds", "Time spent extracting container members", ["format"]
)

containers_opened_total = Counter("wadcatalog_containers_opened_total", "Containers opened", ["format", "status"])

# Catalog Metrics
catalog_inserts_total = Counter("wadcatalog_catalog_inserts_total", "Catalog file inserts", ["status"])

catalog_query_duration_seconds = Histogram(
    "wadcatalog_catalog_query_duration_seconds", "Catalog query duration", ["operation"]
)


class ActiveCrawlTracker:
    """Context manager for tracking active crawls.

    Example:
        with ACTIVE_CRAWLS.track_inprogress():
            crawler.run()
    """

    def __enter__(self):
        ACTIVE_CRAWLS.inc()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        ACTIVE_CRAWLS.dec()
        return False


ACTIVE_CRAWLS.track_inprogress = ActiveCrawlTracker


def get_metrics_export():
    """Prometheus text exposition of every wadcatalog metric, plus its content type"""
    return generate_latest(), CONTENT_TYPE_LATEST
