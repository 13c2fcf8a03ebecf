"""
CloudWatch metrics for store operations.

Emits RequestCount, ErrorCount and Latency with an Operation dimension. The
client buffers metric data and sends it in batches on publish(). Metrics are
only collected when a CloudWatch client is configured in the options.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from .config import DEFAULT_METRICS_NAMESPACE


logger = logging.getLogger('identity_dynamodb.metrics')

# CloudWatch PutMetricData accepts at most 20 metrics per request
BATCH_SIZE = 20


class MetricsClient:
    """
    CloudWatch metrics client for one store operation.

    Usage:
        metrics = MetricsClient('find-by-id', cloudwatch)
        metrics.emit_request_count()
        metrics.emit_latency(latency_ms=15)
        metrics.publish()
    """

    def __init__(
        self,
        operation: str,
        cloudwatch: Any,
        namespace: str = DEFAULT_METRICS_NAMESPACE
    ):
        if not operation or not operation.strip():
            raise ValueError('Operation name is required for metrics')

        self.operation = operation
        self.namespace = namespace
        self.cloudwatch = cloudwatch
        self._metric_data: List[Dict[str, Any]] = []

    @property
    def pending(self) -> List[Dict[str, Any]]:
        return list(self._metric_data)

    def _add_metric(
        self,
        metric_name: str,
        value: float,
        unit: str,
        dimensions: Optional[List[Dict[str, str]]] = None
    ) -> None:
        all_dimensions = [{'Name': 'Operation', 'Value': self.operation}]
        if dimensions:
            all_dimensions.extend(dimensions)

        self._metric_data.append({
            'MetricName': metric_name,
            'Value': value,
            'Unit': unit,
            'Timestamp': datetime.now(timezone.utc),
            'Dimensions': all_dimensions
        })

    def emit_request_count(self, count: int = 1) -> None:
        self._add_metric('RequestCount', float(count), 'Count')

    def emit_error(self, error_code: Optional[str] = None) -> None:
        """
        Emit error metric.

        The error code, when given, is added as an ErrorCode dimension.
        """
        dimensions = []
        if error_code:
            dimensions.append({'Name': 'ErrorCode', 'Value': error_code})

        self._add_metric('ErrorCount', 1.0, 'Count', dimensions or None)

    def emit_latency(self, latency_ms: int) -> None:
        if latency_ms < 0:
            raise ValueError('Latency must be non-negative')

        self._add_metric('Latency', float(latency_ms), 'Milliseconds')

    def publish(self) -> None:
        """
        Publish all accumulated metrics to CloudWatch.

        Metrics never fail the operation they describe: a publishing error is
        logged and the buffer is dropped.
        """
        if not self._metric_data:
            return

        try:
            for i in range(0, len(self._metric_data), BATCH_SIZE):
                self.cloudwatch.put_metric_data(
                    Namespace=self.namespace,
                    MetricData=self._metric_data[i:i + BATCH_SIZE]
                )
        except Exception as error:
            logger.warning('Failed to publish metrics: %s', error)
        finally:
            self._metric_data = []


def create_metrics_client(operation: str, options: Any) -> Optional[MetricsClient]:
    """
    Create a metrics client for an operation, or None when metrics are off.

    Args:
        operation: Operation name (e.g., 'user-store.find-by-id')
        options: DynamoDbOptions carrying the CloudWatch client and namespace
    """
    if options is None or options.cloudwatch is None:
        return None
    return MetricsClient(operation, options.cloudwatch, options.metrics_namespace)
