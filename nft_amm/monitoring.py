# nft_amm/monitoring.py
import socket
import threading
import logging
from socketserver import ThreadingMixIn
from wsgiref.simple_server import make_server, WSGIServer
from prometheus_client import Counter, Gauge, Histogram, CollectorRegistry
from prometheus_client.exposition import make_wsgi_app

from .pool_state import ONE_UNIT, PoolState

logger = logging.getLogger(__name__)


class ThreadingWSGIServer(ThreadingMixIn, WSGIServer):
    """WSGI server handling each scrape in its own thread."""
    allow_reuse_address = True


class Monitor:
    """Prometheus metrics for pool operations and reserves."""

    def __init__(self, host="127.0.0.1", port=9090):
        self.host = host
        self.port = port
        self.server = None
        self.thread = None

        # Isolated registry so several pools can run in one process
        self.registry = CollectorRegistry()

        self.operations = Counter(
            'pool_operations_total', 'Pool operations by outcome',
            ['operation', 'status'], registry=self.registry)
        self.latency = Histogram(
            'pool_operation_latency_seconds', 'Time to execute a pool operation',
            ['operation'], registry=self.registry)
        self.base_reserve = Gauge(
            'pool_base_reserve', 'Base token reserve (smallest units)', registry=self.registry)
        self.nft_reserve = Gauge(
            'pool_nft_reserve', 'Whole NFTs backing the fractional reserve', registry=self.registry)
        self.lp_supply = Gauge(
            'pool_lp_token_supply', 'Outstanding LP shares', registry=self.registry)

    def start_server(self):
        """Serve /metrics from a daemon thread."""
        app = make_wsgi_app(self.registry)
        self.server = make_server(self.host, self.port, app, ThreadingWSGIServer)
        self.server.socket.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)

        self.thread = threading.Thread(target=self.server.serve_forever)
        self.thread.daemon = True
        self.thread.start()
        logger.info(f"Prometheus server started on http://{self.host}:{self.port}")

    def stop_server(self):
        if self.server:
            self.server.shutdown()
            self.server.server_close()
            self.server = None
            logger.info("Prometheus server stopped.")

    def record_operation(self, operation: str, status: str, latency: float):
        self.operations.labels(operation=operation, status=status).inc()
        self.latency.labels(operation=operation).observe(latency)

    def update_pool(self, state: PoolState):
        self.base_reserve.set(state.base_reserve)
        self.nft_reserve.set(state.fractional_reserve // ONE_UNIT)
        self.lp_supply.set(state.lp_token_supply)

    def sample(self, name: str, labels: dict = None) -> float:
        """Current value of a metric sample (None if never recorded)."""
        return self.registry.get_sample_value(name, labels or {})
