"""
Metrics instrumentation (Prometheus).

All application metrics are declared once in ``MetricsRegistry`` and used
through the module-level ``metrics`` instance.
"""
from functools import wraps
import time

from prometheus_client import Counter, Histogram, Gauge


class MetricsRegistry:
    """
    Central metrics registry for the pharmacy back office.

    Provides typed access to all application metrics.
    """

    def __init__(self):
        """Initialize metrics registry."""
        self._setup_metrics()

    def _create_counter(self, name, description, labels=None):
        """Create a counter metric."""
        return Counter(name, description, labels or [])

    def _create_histogram(self, name, description, labels=None, buckets=None):
        """Create a histogram metric."""
        if buckets:
            return Histogram(name, description, labels or [], buckets=buckets)
        return Histogram(name, description, labels or [])

    def _create_gauge(self, name, description, labels=None):
        """Create a gauge metric."""
        return Gauge(name, description, labels or [])

    def _setup_metrics(self):
        """Setup all application metrics."""

        # ===================================================================
        # HTTP Metrics
        # ===================================================================
        self.http_requests_total = self._create_counter(
            'http_requests_total',
            'Total HTTP requests',
            ['path', 'method', 'status']
        )

        self.http_request_duration_seconds = self._create_histogram(
            'http_request_duration_seconds',
            'HTTP request duration in seconds',
            ['path', 'method'],
            buckets=[0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0]
        )

        self.exceptions_total = self._create_counter(
            'exceptions_total',
            'Total exceptions',
            ['exception_type', 'location']
        )

        # ===================================================================
        # Stock Metrics
        # ===================================================================
        self.stock_movements_total = self._create_counter(
            'stock_movements_total',
            'Ledger movements recorded',
            ['movement_type', 'result']
        )

        self.stock_fifo_consume_total = self._create_counter(
            'stock_fifo_consume_total',
            'FIFO batch consumptions',
            ['result']  # success, insufficient_stock
        )

        self.stock_fifo_allocation_duration_seconds = self._create_histogram(
            'stock_fifo_allocation_duration_seconds',
            'FIFO allocation duration',
            buckets=[0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5]
        )

        self.stock_batches_created_total = self._create_counter(
            'stock_batches_created_total',
            'Stock batches created',
            ['source']  # api, import
        )

        self.stock_summary_recompute_total = self._create_counter(
            'stock_summary_recompute_total',
            'Stock summary recomputations',
            ['result']
        )

        self.stock_summary_recompute_duration_seconds = self._create_histogram(
            'stock_summary_recompute_duration_seconds',
            'Stock summary recomputation duration',
            buckets=[0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25]
        )

        self.stock_alert_products = self._create_gauge(
            'stock_alert_products',
            'Products needing attention at the last alert query'
        )

        self.stock_import_rows_total = self._create_counter(
            'stock_import_rows_total',
            'Stock import rows processed',
            ['result']  # success, failure
        )

        # ===================================================================
        # Draft Sales Metrics
        # ===================================================================
        self.draft_sync_total = self._create_counter(
            'draft_sync_total',
            'Draft tab synchronisations',
            ['result']
        )

        self.draft_tabs_deleted_total = self._create_counter(
            'draft_tabs_deleted_total',
            'Open draft tabs removed by synchronisation'
        )

        # ===================================================================
        # Sales Metrics
        # ===================================================================
        self.sales_complete_total = self._create_counter(
            'sales_complete_total',
            'Sale settlements',
            ['result']  # success, validation_error, insufficient_stock, conflict, not_found, error
        )

        self.sales_complete_duration_seconds = self._create_histogram(
            'sales_complete_duration_seconds',
            'Duration of sale settlement',
            buckets=[0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5]
        )

        self.sales_items_total = self._create_counter(
            'sales_items_total',
            'Sale items settled',
            ['tracking']  # serial, batch
        )

    def track_duration(self, histogram_metric):
        """
        Decorator to track function duration.

        Usage:
            @metrics.track_duration(metrics.stock_summary_recompute_duration_seconds)
            def recompute_summary(product):
                ...
        """
        def decorator(func):
            @wraps(func)
            def wrapper(*args, **kwargs):
                start_time = time.time()
                try:
                    return func(*args, **kwargs)
                finally:
                    histogram_metric.observe(time.time() - start_time)
            return wrapper
        return decorator


# Global metrics instance
metrics = MetricsRegistry()
