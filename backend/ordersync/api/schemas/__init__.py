"""API schema package."""

from ordersync.api.schemas.sync import (
    IntervalChangeResponse,
    IntervalUpdate,
    LedgerResponse,
    RemovedResponse,
)

__all__ = ["IntervalUpdate", "IntervalChangeResponse", "LedgerResponse", "RemovedResponse"]
