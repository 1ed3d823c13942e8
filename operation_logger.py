"""
Operation Logger Module
Handles logging of zone operations to CSV files organized by month
"""
import csv
import os
from datetime import datetime
from typing import Iterable, List, Optional
import logging

from config import OperationLogConfig

HEADERS = ['timestamp', 'zones', 'operation', 'client_ip', 'status', 'detail']


class OperationLogger:
    def __init__(self, base_dir=None):
        self.base_dir = base_dir or OperationLogConfig.BASE_DIR
        self.logger = logging.getLogger(__name__)
        self._ensure_log_directory()
        self.logger.info(f"Operation logs will be stored in: {self.base_dir}")

    def _ensure_log_directory(self):
        """Ensure log directories exist"""
        if not os.path.exists(self.base_dir):
            os.makedirs(self.base_dir, exist_ok=True)
            self.logger.info(f"Created operations log directory: {self.base_dir}")

    def _get_log_path(self, timestamp: datetime) -> str:
        """Get path for the current month's log file"""
        year_dir = os.path.join(self.base_dir, str(timestamp.year))
        if not os.path.exists(year_dir):
            os.makedirs(year_dir, exist_ok=True)

        return os.path.join(year_dir, f"operations_{timestamp.strftime('%Y_%m')}.csv")

    def _ensure_csv_headers(self, filepath: str):
        """Ensure CSV file exists with headers"""
        if not os.path.exists(filepath):
            self.logger.info(f"Creating new operations log file: {filepath}")
            with open(filepath, 'w', newline='') as f:
                writer = csv.writer(f)
                writer.writerow(HEADERS)

    def log_operation(self, timestamp: datetime, zones: Iterable[str], operation: str,
                      client_ip: Optional[str], status: str, detail: str = None) -> Optional[str]:
        """
        Log a zone operation to the appropriate CSV file

        Returns:
            Path of the CSV file written, None if logging failed
        """
        zone_list = " ".join(zones)
        try:
            log_path = self._get_log_path(timestamp)
            self._ensure_csv_headers(log_path)

            with open(log_path, 'a', newline='') as f:
                writer = csv.writer(f)
                writer.writerow([
                    timestamp.isoformat(),
                    zone_list,
                    operation,
                    client_ip or 'unknown',
                    status,
                    detail or ''
                ])

            self.logger.info(f"Operation logged to CSV: {operation} on [{zone_list}] - {status}")
            return log_path
        except OSError as e:
            # The audit trail never fails the operation it records
            self.logger.error(f"Error logging operation to CSV: {e}")
            return None

    def get_recent_operations(self, limit=10) -> List[dict]:
        """Get most recent operations from log files"""
        try:
            all_years = [d for d in os.listdir(self.base_dir) if os.path.isdir(os.path.join(self.base_dir, d))]
            if not all_years:
                return []

            most_recent_year = max(all_years)
            year_dir = os.path.join(self.base_dir, most_recent_year)

            log_files = [f for f in os.listdir(year_dir) if f.startswith("operations_") and f.endswith(".csv")]
            if not log_files:
                return []

            log_path = os.path.join(year_dir, max(log_files))

            with open(log_path, 'r', newline='') as f:
                entries = list(csv.DictReader(f))

            return sorted(entries, key=lambda x: x['timestamp'], reverse=True)[:limit]

        except OSError as e:
            self.logger.error(f"Error retrieving recent operations: {e}")
            return []
