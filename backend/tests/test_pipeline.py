"""
Tests for the step pipeline engine and the order-file flow.

Engine tests use small recording steps; flow tests run the real six
steps against the in-memory commerce API.
"""

import pytest

from ordersync.core.constants import PipelineStatus, StepStatus
from ordersync.pipeline.context import OrderFileContext
from ordersync.pipeline.engine import PipelineEngine
from ordersync.pipeline.errors import NoOrdersFoundError, StepExecutionError
from ordersync.pipeline.flow import build_order_engine, order_file_flow
from ordersync.pipeline.step import PipelineStep
from tests.factories import detail_line, header_line, order_file, two_order_file


class RecordingStep(PipelineStep):
    def __init__(self, name, *, error=None, failures=None, retryable=False, skip=False):
        self.name = name
        self.description = f"Recording step {name}"
        self.retryable = retryable
        self.error = error
        self.failures = failures
        self.skip = skip
        self.calls = 0

    async def should_skip(self, ctx):
        return self.skip

    async def execute(self, ctx):
        started_at = self._now()
        self.calls += 1
        if self.error is not None and (self.failures is None or self.calls <= self.failures):
            raise self.error
        ctx.set_extra(self.name, self.calls)
        return self._success(started_at, metadata={"calls": self.calls})


class TestPipelineEngine:
    """Tests for sequencing, retries and error codes."""

    @pytest.mark.asyncio
    async def test_all_steps_complete(self):
        steps = [RecordingStep("a"), RecordingStep("b")]

        result = await PipelineEngine(steps).run("f.txt", "content")

        assert result.success
        assert result.status == PipelineStatus.COMPLETED
        assert result.steps_completed == 2
        assert [r["status"] for r in result.step_results] == [StepStatus.COMPLETED] * 2
        assert result.error_code is None

    @pytest.mark.asyncio
    async def test_stops_at_first_failure(self):
        steps = [
            RecordingStep("a"),
            RecordingStep("b", error=NoOrdersFoundError("nothing here")),
            RecordingStep("c"),
        ]

        result = await PipelineEngine(steps).run("f.txt", "content")

        assert not result.success
        assert result.error_code == "NoOrdersFound"
        assert result.error == "nothing here"
        assert steps[2].calls == 0
        assert result.steps_completed == 1

    @pytest.mark.asyncio
    async def test_retryable_step_recovers(self):
        flaky = RecordingStep("flaky", error=StepExecutionError("blip"), failures=2, retryable=True)

        result = await PipelineEngine([flaky], retry_backoff_base=0).run("f.txt", "content")

        assert result.success
        assert flaky.calls == 3

    @pytest.mark.asyncio
    async def test_retry_exhausted(self):
        broken = RecordingStep("broken", error=StepExecutionError("down"), retryable=True)

        result = await PipelineEngine([broken], retry_backoff_base=0).run("f.txt", "content")

        assert result.error_code == "StepRetryExhausted"
        assert broken.calls == broken.max_retries
        assert result.step_results[0]["metadata"]["attempts"] == broken.max_retries

    @pytest.mark.asyncio
    async def test_non_retryable_step_runs_once(self):
        step = RecordingStep("once", error=StepExecutionError("down"))

        result = await PipelineEngine([step], retry_backoff_base=0).run("f.txt", "content")

        assert result.error_code == "StepExecutionError"
        assert step.calls == 1

    @pytest.mark.asyncio
    async def test_unexpected_exception(self):
        step = RecordingStep("bug", error=KeyError("missing"), retryable=True)

        result = await PipelineEngine([step], retry_backoff_base=0).run("f.txt", "content")

        assert result.error_code == "Unexpected"
        assert step.calls == 1

    @pytest.mark.asyncio
    async def test_skipped_step(self):
        skipped = RecordingStep("skipped", skip=True)

        result = await PipelineEngine([skipped, RecordingStep("b")]).run("f.txt", "content")

        assert result.success
        assert skipped.calls == 0
        assert result.step_results[0]["status"] == StepStatus.SKIPPED

    @pytest.mark.asyncio
    async def test_run_steps_with_prebuilt_context(self):
        ctx = OrderFileContext(file_name="f.txt", content="content")

        result = await PipelineEngine([]).run_steps(ctx, [RecordingStep("a")])

        assert result.execution_id == ctx.execution_id
        assert ctx.get_extra("a") == 1


class TestOrderFileFlow:
    """End-to-end runs of the six order-file steps."""

    @pytest.fixture
    def sleeps(self):
        return []

    def _engine(self, client, settings, sleeps):
        async def sleep(seconds):
            sleeps.append(seconds)

        return build_order_engine(client, settings, sleep=sleep, retry_backoff_base=0)

    def test_step_order(self, commerce_api, test_settings):
        steps = order_file_flow(commerce_api.client(), test_settings)

        assert [s.name for s in steps] == [
            "parse_records",
            "check_existing_orders",
            "reconcile_skus",
            "resolve_customers",
            "build_orders",
            "submit_orders",
        ]

    @pytest.mark.asyncio
    async def test_submits_every_order(self, commerce_api, test_settings, sleeps):
        async with commerce_api.client() as client:
            result = await self._engine(client, test_settings, sleeps).run("f.txt", two_order_file())

        assert result.success, result.error
        assert [o["sourceReferenceId"] for o in commerce_api.orders] == ["ORD1", "ORD2"]
        assert all("_metadata" not in o for o in commerce_api.orders)
        assert [o["customer"]["customerId"] for o in commerce_api.orders] == ["cust-1", "cust-2"]
        assert commerce_api.orders[0]["sourceId"] == "source-1"
        assert commerce_api.orders[0]["items"][0]["productId"] == "prod-1"
        assert result.context_summary["orders_submitted"] == 2

    @pytest.mark.asyncio
    async def test_existing_order_skipped(self, commerce_api, test_settings, sleeps):
        commerce_api.existing_references.add("PO-1")

        async with commerce_api.client() as client:
            result = await self._engine(client, test_settings, sleeps).run("f.txt", two_order_file())

        assert result.success
        assert [o["sourceReferenceId"] for o in commerce_api.orders] == ["ORD2"]
        assert result.context_summary["orders_existing"] == 1
        assert [c["barcode"] for c in commerce_api.created_customers] == ["ACC2"]

    @pytest.mark.asyncio
    async def test_all_existing_skips_later_steps(self, commerce_api, test_settings, sleeps):
        commerce_api.existing_references.update({"PO-1", "PO-2"})

        async with commerce_api.client() as client:
            result = await self._engine(client, test_settings, sleeps).run("f.txt", two_order_file())

        assert result.success
        assert [r["status"] for r in result.step_results[2:]] == [StepStatus.SKIPPED] * 4
        assert commerce_api.product_lookups == []
        assert commerce_api.orders == []

    @pytest.mark.asyncio
    async def test_one_customer_per_account(self, commerce_api, test_settings, sleeps):
        text = order_file(
            header_line(order_id="A", customer_reference_number="PO-A"),
            detail_line(),
            header_line(order_id="B", customer_reference_number="PO-B"),
            detail_line(),
        )

        async with commerce_api.client() as client:
            result = await self._engine(client, test_settings, sleeps).run("f.txt", text)

        assert result.success
        assert len(commerce_api.created_customers) == 1
        assert {o["customer"]["customerId"] for o in commerce_api.orders} == {"cust-1"}

    @pytest.mark.asyncio
    async def test_unresolvable_order_blocks_whole_file(self, commerce_api, test_settings, sleeps):
        text = order_file(
            header_line(),
            detail_line(),
            header_line(order_id="ORD2", customer_reference_number="PO-2"),
            detail_line(product_code="UNKNOWN"),
        )

        async with commerce_api.client() as client:
            result = await self._engine(client, test_settings, sleeps).run("f.txt", text)

        assert result.error_code == "NoResolvableItems"
        assert commerce_api.orders == []
        assert result.step_results[-1]["step_name"] == "reconcile_skus"
        assert commerce_api.created_customers == []
        assert sleeps == []

    @pytest.mark.asyncio
    async def test_partially_resolvable_order_submitted(self, commerce_api, test_settings, sleeps):
        text = order_file(header_line(), detail_line(), detail_line(product_code="UNKNOWN"))

        async with commerce_api.client() as client:
            result = await self._engine(client, test_settings, sleeps).run("f.txt", text)

        assert result.success
        assert len(commerce_api.orders[0]["items"]) == 1
        assert result.context_summary["orders"][0]["missing_skus"] == ["UNKNOWN"]

    @pytest.mark.asyncio
    async def test_no_orders_found(self, commerce_api, test_settings, sleeps):
        async with commerce_api.client() as client:
            result = await self._engine(client, test_settings, sleeps).run("f.txt", order_file(header_line()))

        assert result.error_code == "NoOrdersFound"
        assert commerce_api.requests == []

    @pytest.mark.asyncio
    async def test_invalid_input(self, commerce_api, test_settings, sleeps):
        async with commerce_api.client() as client:
            result = await self._engine(client, test_settings, sleeps).run("f.txt", "")

        assert result.error_code == "InvalidInput"

    @pytest.mark.asyncio
    async def test_submission_failure(self, commerce_api, test_settings, sleeps):
        commerce_api.order_status = 500

        async with commerce_api.client() as client:
            result = await self._engine(client, test_settings, sleeps).run("f.txt", two_order_file())

        assert result.error_code == "SubmissionFailed"
        assert result.step_results[-1]["step_name"] == "submit_orders"

    @pytest.mark.asyncio
    async def test_catalog_outage_retried(self, commerce_api, test_settings, sleeps):
        commerce_api.product_failures = 2

        async with commerce_api.client() as client:
            result = await self._engine(client, test_settings, sleeps).run("f.txt", two_order_file())

        assert result.success
        assert len(commerce_api.orders) == 2

    @pytest.mark.asyncio
    async def test_customer_failure_code(self, commerce_api, test_settings, sleeps):
        commerce_api.create_customer_body = {"message": "accepted"}

        async with commerce_api.client() as client:
            result = await self._engine(client, test_settings, sleeps).run("f.txt", two_order_file())

        assert result.error_code == "CustomerCreationFailed"
        assert commerce_api.orders == []

    @pytest.mark.asyncio
    async def test_rerun_after_partial_submission(self, commerce_api, test_settings, sleeps):
        """Orders that went out before a failure are skipped on the next attempt."""
        async with commerce_api.client() as client:
            engine = self._engine(client, test_settings, sleeps)
            await engine.run("f.txt", order_file(header_line(), detail_line()))
            result = await engine.run("f.txt", two_order_file())

        assert result.success
        assert [o["sourceReferenceId"] for o in commerce_api.orders] == ["ORD1", "ORD2"]
