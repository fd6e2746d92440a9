import logging
from prometheus_client import Counter, Info, generate_latest
from prometheus_client.core import CollectorRegistry

logger = logging.getLogger(__name__)

# Prometheus Registry
REGISTRY = CollectorRegistry()

csv_rows_imported_total = Counter(
    'dealership_csv_rows_imported_total',
    'CSV stock rows processed by outcome',
    ['outcome'],
    registry=REGISTRY
)

stock_assignments_total = Counter(
    'dealership_stock_assignments_total',
    'Stock to customer assignments by outcome',
    ['outcome', 'source'],
    registry=REGISTRY
)

booking_transitions_total = Counter(
    'dealership_booking_transitions_total',
    'Service booking status transitions',
    ['from_status', 'to_status'],
    registry=REGISTRY
)

rate_limit_exceeded_total = Counter(
    'dealership_rate_limit_exceeded_total',
    'Total rate limit violations',
    ['endpoint'],
    registry=REGISTRY
)

system_info = Info(
    'dealership_backoffice_info',
    'System information',
    registry=REGISTRY
)


class PrometheusMetricsCollector:
    """Thin facade over the business counters"""

    def __init__(self):
        system_info.info({
            'version': '1.0.0',
            'service': 'dealership-backoffice'
        })

    def record_csv_row(self, success: bool):
        csv_rows_imported_total.labels(outcome='success' if success else 'failure').inc()

    def record_assignment(self, success: bool, source: str):
        stock_assignments_total.labels(
            outcome='success' if success else 'failure',
            source=source
        ).inc()

    def record_booking_transition(self, from_status: str, to_status: str):
        booking_transitions_total.labels(from_status=from_status, to_status=to_status).inc()

    def record_rate_limit(self, endpoint: str):
        rate_limit_exceeded_total.labels(endpoint=endpoint).inc()

    def get_prometheus_metrics(self) -> bytes:
        """Get Prometheus metrics in text format"""
        return generate_latest(REGISTRY)


# Global instance
prometheus_collector = PrometheusMetricsCollector()
