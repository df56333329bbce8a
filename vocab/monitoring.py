"""
Monitoring module for the vocab app.
Handles logging setup and optional CloudWatch session metrics.
"""

import os
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError

logger = logging.getLogger(__name__)

_LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
_configured = False


def configure_logging(log_dir: Optional[str] = None) -> None:
    """Configure the root logger once per process (level from LOG_LEVEL; default INFO)."""
    global _configured
    if _configured:
        return
    level_name = os.getenv('LOG_LEVEL', 'INFO').strip().upper()
    level = getattr(logging, level_name, logging.INFO)

    logs_dir = Path(log_dir or os.getenv('LOG_DIR', 'logs'))
    handlers = [logging.StreamHandler()]
    try:
        logs_dir.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(logs_dir / 'vocab.log'))
    except OSError as e:
        # Read-only deployments still get console logs
        print(f"Could not create log directory {logs_dir}: {e}")

    logging.basicConfig(level=level, format=_LOG_FORMAT, handlers=handlers, force=True)
    logging.getLogger('vocab').setLevel(level)
    _configured = True


class SessionMetrics:
    """Publishes session lifecycle metrics to CloudWatch when enabled."""

    def __init__(self, environment: str = 'Development', enabled: bool = False,
                 region_name: Optional[str] = None):
        self.environment = environment
        self.enabled = enabled
        self.namespace = f"VocabApp/{environment}"
        self.cloudwatch = None
        if enabled:
            self.cloudwatch = boto3.client(
                'cloudwatch',
                region_name=region_name or os.getenv('AWS_REGION', 'us-east-1'),
            )

    def put_metric(self, metric_name: str, value: float, unit: str,
                   dimensions: Optional[Dict[str, str]] = None) -> None:
        """
        Put a metric to CloudWatch.

        Args:
            metric_name: Name of the metric
            value: Metric value
            unit: Metric unit (e.g., 'Count', 'Milliseconds')
            dimensions: Optional dictionary of dimension name-value pairs
        """
        if not self.enabled or self.cloudwatch is None:
            logger.debug(f"Metric {metric_name}={value} {unit} (CloudWatch disabled)")
            return
        try:
            metric_data = {
                'MetricName': metric_name,
                'Value': value,
                'Unit': unit,
                'Timestamp': datetime.now(timezone.utc),
            }
            if dimensions:
                metric_data['Dimensions'] = [
                    {'Name': k, 'Value': v} for k, v in dimensions.items()
                ]
            self.cloudwatch.put_metric_data(
                Namespace=self.namespace,
                MetricData=[metric_data]
            )
            logger.debug(f"Published metric {metric_name}: {value} {unit}")
        except (ClientError, BotoCoreError) as e:
            logger.error(f"Failed to publish metric {metric_name}: {str(e)}")

    def track_logout(self, event_type: str) -> None:
        self.put_metric('LogoutRecorded', 1, 'Count', {'EventType': event_type})

    def track_forced_logout(self, reason: str) -> None:
        self.put_metric('ForcedLogout', 1, 'Count', {'Reason': reason})

    def track_expired_cleanup(self, count: int) -> None:
        self.put_metric('ExpiredSessionsCleaned', count, 'Count')
