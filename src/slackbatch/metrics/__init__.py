from .metrics import ForwarderMetrics, MetricsCollector

__all__ = ["ForwarderMetrics", "MetricsCollector"]
