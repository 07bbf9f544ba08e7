"""
OrderFileContext — mutable state object carried through every step.

One context per order file.  The parse step fills in ``orders``; each
later step reads and updates the per-order work items.  The engine
serialises the final context into the PipelineResult for the verdict
and the processing-results history.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from ordersync.parsing.records import OrderGroup


# ═══════════════════════════════════════════════════════════
#  StepResult
# ═══════════════════════════════════════════════════════════

@dataclass
class StepResult:
    """Outcome of a single pipeline step execution."""

    step_name: str
    status: str                     # StepStatus value
    started_at: datetime | None = None
    completed_at: datetime | None = None
    duration_ms: int = 0
    error: str | None = None
    error_code: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "step_name": self.step_name,
            "status": self.status,
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "duration_ms": self.duration_ms,
            "error": self.error,
            "error_code": self.error_code,
            "metadata": self.metadata,
        }


# ═══════════════════════════════════════════════════════════
#  OrderWorkItem — per-order progress within a file
# ═══════════════════════════════════════════════════════════

@dataclass
class OrderWorkItem:
    """
    Progress of one order group through the steps.

    ``already_exists`` is set by the idempotency pre-check; such orders
    are skipped by every later step but still count as success.
    """

    group: OrderGroup
    already_exists: bool = False
    customer_id: str | None = None
    payload: dict[str, Any] | None = None
    submitted: bool = False
    response: dict[str, Any] | None = None

    @property
    def order_id(self) -> str:
        return self.group.header.order_id

    @property
    def customer_reference(self) -> str:
        return self.group.header.customer_reference_number

    @property
    def is_pending(self) -> bool:
        return not self.already_exists

    def summary(self) -> dict[str, Any]:
        metadata = (self.payload or {}).get("_metadata", {})
        return {
            "order_id": self.order_id,
            "customer_reference": self.customer_reference,
            "item_count": len(self.group.items),
            "already_exists": self.already_exists,
            "customer_id": self.customer_id,
            "submitted": self.submitted,
            "missing_skus": metadata.get("missingSkus", []),
        }


# ═══════════════════════════════════════════════════════════
#  OrderFileContext
# ═══════════════════════════════════════════════════════════

@dataclass
class OrderFileContext:
    """Carries all state between the steps for one order file."""

    # ─── Identity (set at init) ────────────────────────
    file_name: str
    content: str
    execution_id: str = field(default_factory=lambda: str(uuid.uuid4()))

    # ─── Populated by steps ────────────────────────────
    orders: list[OrderWorkItem] = field(default_factory=list)
    sku_map: dict[str, str] = field(default_factory=dict)

    # ─── Execution tracking ────────────────────────────
    current_step_index: int = 0
    total_steps: int = 0
    step_results: list[StepResult] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)

    # ─── Arbitrary step-to-step data ───────────────────
    extra: dict[str, Any] = field(default_factory=dict)

    @property
    def pending_orders(self) -> list[OrderWorkItem]:
        """Orders not already present server-side."""
        return [order for order in self.orders if order.is_pending]

    def add_error(self, error: str) -> None:
        self.errors.append(error)

    def set_extra(self, key: str, value: Any) -> None:
        self.extra[key] = value

    def get_extra(self, key: str, default: Any = None) -> Any:
        return self.extra.get(key, default)

    def to_summary_dict(self) -> dict[str, Any]:
        """Compact summary for logs and the processing-results history."""
        return {
            "execution_id": self.execution_id,
            "file_name": self.file_name,
            "content_length": len(self.content) if isinstance(self.content, str) else 0,
            "orders_total": len(self.orders),
            "orders_existing": sum(1 for o in self.orders if o.already_exists),
            "orders_submitted": sum(1 for o in self.orders if o.submitted),
            "orders": [o.summary() for o in self.orders],
            "steps_completed": len(self.step_results),
            "total_steps": self.total_steps,
            "errors": self.errors,
        }
