"""
Celery configuration for the order-file worker.

Loaded by `celery_app.config_from_object("celeryconfig")` in ordersync/tasks/__init__.py.
Broker/result-backend URLs come from the same settings as the API process.
"""

from ordersync.core.config import settings

# ═══════════════════════════════════════════════════════════
#  Broker & Result Backend
# ═══════════════════════════════════════════════════════════

broker_url = settings.CELERY_BROKER_URL
result_backend = settings.CELERY_RESULT_BACKEND

# ═══════════════════════════════════════════════════════════
#  Serialization — JSON only
# ═══════════════════════════════════════════════════════════

task_serializer = "json"
result_serializer = "json"
accept_content = ["json"]

# ═══════════════════════════════════════════════════════════
#  Timezone
# ═══════════════════════════════════════════════════════════

timezone = "UTC"
enable_utc = True

# ═══════════════════════════════════════════════════════════
#  Task Execution
# ═══════════════════════════════════════════════════════════

# Ack on receipt: a redelivered task would submit its orders again.
task_acks_late = False

# One file at a time per worker process
worker_prefetch_multiplier = 1

# Above DISPATCH_TIMEOUT_S: the orchestrator stops waiting first.
task_soft_time_limit = 300
task_time_limit = 330

# ═══════════════════════════════════════════════════════════
#  Result Expiry
# ═══════════════════════════════════════════════════════════

result_expires = 3600

# ═══════════════════════════════════════════════════════════
#  Worker Settings
# ═══════════════════════════════════════════════════════════

worker_max_tasks_per_child = 200
worker_send_task_events = False
task_send_sent_event = False

# ═══════════════════════════════════════════════════════════
#  Task Routes
# ═══════════════════════════════════════════════════════════
#   celery -A ordersync.tasks worker -Q orders

task_routes = {
    "ordersync.tasks.processing_tasks.*": {"queue": "orders"},
}

task_default_queue = "default"
