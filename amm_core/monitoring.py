"""
Prometheus metrics for pair operations and reserves.
"""
import logging
import socket
import threading
import time
from socketserver import ThreadingMixIn
from wsgiref.simple_server import make_server, WSGIServer

from prometheus_client import Counter, Gauge, Histogram, CollectorRegistry
from prometheus_client.exposition import make_wsgi_app

from amm_core.pair import Pair

logger = logging.getLogger(__name__)


class ThreadingWSGIServer(ThreadingMixIn, WSGIServer):
    """A WSGI server that runs in a separate thread to not block the host."""
    allow_reuse_address = True


class Monitor:
    def __init__(self, host: str = "127.0.0.1", port: int = 9090):
        self.host = host
        self.port = port
        self.server = None
        self.thread = None

        # isolated registry so several hosts can live in one process
        self.registry = CollectorRegistry()

        self.operations = Counter(
            'amm_operations_total', 'Operations executed', ['operation', 'status'],
            registry=self.registry)
        self.latency = Histogram(
            'amm_operation_latency_seconds', 'Time to execute an operation',
            registry=self.registry)
        self.reserve = Gauge(
            'amm_reserve', 'Recorded pair reserve', ['pair', 'token'], registry=self.registry)
        self.k = Gauge(
            'amm_invariant_k', 'Constant product reserve0 * reserve1', ['pair'],
            registry=self.registry)
        self.total_supply = Gauge(
            'amm_total_supply', 'Outstanding liquidity shares', ['pair'], registry=self.registry)

    def start_server(self, max_retries: int = 5, retry_delay: float = 2):
        """Serve /metrics from a daemon thread, retrying while the port is busy."""
        app = make_wsgi_app(self.registry)

        for attempt in range(max_retries):
            try:
                self.server = make_server(self.host, self.port, app, ThreadingWSGIServer)
                self.server.socket.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
                self.thread = threading.Thread(target=self.server.serve_forever, daemon=True)
                self.thread.start()
                logger.info(f"Prometheus server started on http://{self.host}:{self.port}")
                return
            except OSError as e:
                if e.errno == 98 and attempt < max_retries - 1:  # Address already in use
                    logger.warning(
                        f"Port {self.port} in use, retrying in {retry_delay}s "
                        f"(attempt {attempt + 1}/{max_retries})...")
                    time.sleep(retry_delay)
                else:
                    logger.error(f"Failed to bind to port {self.port}: {e}")
                    raise

    def stop_server(self):
        if self.server:
            self.server.shutdown()
            self.server.server_close()
            self.server = None
            logger.info("Prometheus server stopped.")

    def record_operation(self, operation: str, status: str, latency: float):
        self.operations.labels(operation=operation, status=status).inc()
        self.latency.observe(latency)

    def observe_pair(self, pair: Pair):
        reserve0, reserve1, _ = pair.get_reserves()
        label = pair.address.hex()
        self.reserve.labels(pair=label, token='0').set(reserve0)
        self.reserve.labels(pair=label, token='1').set(reserve1)
        self.k.labels(pair=label).set(reserve0 * reserve1)
        self.total_supply.labels(pair=label).set(pair.total_supply)

    def update(self, host):
        for contract in host.contracts():
            if isinstance(contract, Pair):
                self.observe_pair(contract)
