from ordersync.pipeline.steps.build_orders import BuildOrdersStep
from ordersync.pipeline.steps.check_existing_orders import CheckExistingOrdersStep
from ordersync.pipeline.steps.parse_records import ParseRecordsStep
from ordersync.pipeline.steps.reconcile_skus import ReconcileSkusStep
from ordersync.pipeline.steps.resolve_customers import ResolveCustomersStep
from ordersync.pipeline.steps.submit_orders import SubmitOrdersStep

__all__ = [
    "BuildOrdersStep",
    "CheckExistingOrdersStep",
    "ParseRecordsStep",
    "ReconcileSkusStep",
    "ResolveCustomersStep",
    "SubmitOrdersStep",
]
