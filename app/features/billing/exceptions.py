"""Billing exceptions"""
from app.infra.gateways.base import GatewayConfigurationError, GatewayError


class ConcurrentUpdateError(Exception):
    """A guarded update matched no row: another writer changed it first"""

    def __init__(self, table: str, row_id: str, expected_status: str):
        super().__init__(f"{table} {row_id} is no longer in status '{expected_status}'")
        self.table = table
        self.row_id = row_id
        self.expected_status = expected_status


__all__ = ["ConcurrentUpdateError", "GatewayConfigurationError", "GatewayError"]
