from django.test import SimpleTestCase

from fiscal.models import FiscalAuditLog
from fiscal.payloads import build_fiscal_order_data
from fiscal.types import DUPLICATE_PROCESSING, FiscalProviderResult, FiscalStatus
from fiscal.workflows import (
    FiscalPersistError,
    FiscalRetryWorkflow,
    OrderAlreadyFiscalized,
    RetrySummary,
    fiscalize_order,
    void_receipt,
)
from fiscal.store import OrderNotFound
from fiscal.tests.doubles import (
    InMemoryOrderStore,
    ScriptedAdapter,
    build_service,
    make_stored_order,
    minutes_ago,
)


class RecordingSleep:
    def __init__(self):
        self.calls = []

    async def __call__(self, seconds):
        self.calls.append(seconds)


def _failure(message="Provider down", code="SERVICE_UNAVAILABLE"):
    return FiscalProviderResult.failure(message, error_code=code)


class UnrecordableStore(InMemoryOrderStore):
    """Store whose success write always fails."""

    async def mark_fiscal_success(self, order_id, *, external_id, pdf_url):
        raise RuntimeError("db write failed")


class FiscalizeOrderTests(SimpleTestCase):
    async def test_success_marks_order_and_audits(self):
        store = InMemoryOrderStore([make_stored_order("order-1", fiscal_status=FiscalStatus.PENDING)])
        service = build_service(ScriptedAdapter())

        result = await fiscalize_order(service, store, store.orders["order-1"], action=FiscalAuditLog.Action.EMIT)

        self.assertTrue(result.success)
        order = store.orders["order-1"]
        self.assertEqual(order.fiscal_status, FiscalStatus.SUCCESS)
        self.assertEqual(order.fiscal_external_id, "EXT-1")
        self.assertEqual(order.pdf_url, "https://receipts.test/EXT-1.pdf")
        self.assertEqual(order.notes, "")

        audit = store.audits[0]
        self.assertEqual(audit.action, FiscalAuditLog.Action.EMIT)
        self.assertEqual(audit.status, FiscalAuditLog.Status.SUCCESS)
        self.assertEqual(audit.provider, "Scripted")
        self.assertEqual(audit.external_id, "EXT-1")
        self.assertEqual(audit.request_data["order_id"], "order-1")
        self.assertEqual(audit.request_data["total_vat"], 307)
        self.assertGreaterEqual(audit.processing_time_ms, 0)

    async def test_failure_appends_note(self):
        store = InMemoryOrderStore(
            [make_stored_order("order-1", fiscal_status=FiscalStatus.PENDING, notes="No onions")]
        )
        service = build_service(ScriptedAdapter([_failure()]))

        result = await fiscalize_order(service, store, store.orders["order-1"])

        self.assertFalse(result.success)
        order = store.orders["order-1"]
        self.assertEqual(order.fiscal_status, FiscalStatus.ERROR)
        self.assertEqual(order.notes, "No onions | Fiscal error: Provider down")
        self.assertEqual(store.audits[0].status, FiscalAuditLog.Status.ERROR)
        self.assertEqual(store.audits[0].error_code, "SERVICE_UNAVAILABLE")

    async def test_failure_note_masks_credentials(self):
        store = InMemoryOrderStore([make_stored_order("order-1")])
        service = build_service(ScriptedAdapter([_failure("rejected api_key=sk_live_123")]))

        await fiscalize_order(service, store, store.orders["order-1"])

        self.assertNotIn("sk_live_123", store.orders["order-1"].notes)
        self.assertNotIn("sk_live_123", store.audits[0].error_message)

    async def test_duplicate_result_leaves_order_untouched(self):
        store = InMemoryOrderStore([make_stored_order("order-1", fiscal_status=FiscalStatus.PENDING)])
        service = build_service(ScriptedAdapter([_failure("busy", DUPLICATE_PROCESSING)]))

        result = await fiscalize_order(service, store, store.orders["order-1"])

        self.assertEqual(result.error_code, DUPLICATE_PROCESSING)
        self.assertEqual(store.orders["order-1"].fiscal_status, FiscalStatus.PENDING)
        self.assertEqual(store.audits, [])

    async def test_unrecorded_success_keeps_order_out_of_retries(self):
        store = UnrecordableStore([make_stored_order("order-1", fiscal_status=FiscalStatus.PENDING, notes="n/a")])
        service = build_service(ScriptedAdapter())

        with self.assertLogs("fiscal.workflows", level="ERROR"):
            with self.assertRaises(FiscalPersistError) as ctx:
                await fiscalize_order(service, store, store.orders["order-1"])

        self.assertEqual(ctx.exception.external_id, "EXT-1")
        order = store.orders["order-1"]
        self.assertEqual(order.fiscal_status, FiscalStatus.PENDING)
        self.assertEqual(order.notes, "n/a | Fiscal receipt EXT-1 emitted but not recorded")
        self.assertEqual(store.audits[0].external_id, "EXT-1")
        self.assertEqual(store.audits[0].status, FiscalAuditLog.Status.SUCCESS)

    async def test_disabled_service_records_placeholder_id(self):
        store = InMemoryOrderStore([make_stored_order("order-1", fiscal_status=FiscalStatus.PENDING)])
        service = build_service(ScriptedAdapter(), enabled=False)

        await fiscalize_order(service, store, store.orders["order-1"])

        order = store.orders["order-1"]
        self.assertEqual(order.fiscal_status, FiscalStatus.SUCCESS)
        self.assertEqual(order.fiscal_external_id, "DISABLED-order-1")


class FiscalRetryWorkflowTests(SimpleTestCase):
    def _workflow(self, store, adapter, **kwargs):
        self.sleep = RecordingSleep()
        kwargs.setdefault("interval_seconds", 0.5)
        return FiscalRetryWorkflow(build_service(adapter), store, sleep=self.sleep, **kwargs)

    async def test_retry_recovery_keeps_notes(self):
        store = InMemoryOrderStore([make_stored_order("order-1", notes="n/a")])
        workflow = self._workflow(store, ScriptedAdapter())

        result = await workflow.retry_order("order-1")

        self.assertTrue(result.success)
        order = store.orders["order-1"]
        self.assertEqual(order.fiscal_status, FiscalStatus.SUCCESS)
        self.assertEqual(order.fiscal_external_id, "EXT-1")
        self.assertEqual(order.notes, "n/a")
        self.assertEqual(order.fiscal_retry_count, 1)
        self.assertEqual(store.audits[0].action, FiscalAuditLog.Action.RETRY)

    async def test_retry_failure_accumulates_notes(self):
        store = InMemoryOrderStore([make_stored_order("order-1", notes="n/a")])
        workflow = self._workflow(store, ScriptedAdapter([_failure("first"), _failure("second")]))

        await workflow.retry_order("order-1")
        await workflow.retry_order("order-1")

        order = store.orders["order-1"]
        self.assertEqual(order.fiscal_status, FiscalStatus.ERROR)
        self.assertEqual(order.notes, "n/a | Fiscal retry error: first | Fiscal retry error: second")
        self.assertEqual(order.fiscal_retry_count, 2)

    async def test_retry_order_refuses_fiscalized_order(self):
        store = InMemoryOrderStore([make_stored_order("order-1", fiscal_status=FiscalStatus.SUCCESS)])
        adapter = ScriptedAdapter()
        workflow = self._workflow(store, adapter)

        with self.assertRaises(OrderAlreadyFiscalized):
            await workflow.retry_order("order-1")

        self.assertEqual(adapter.emit_calls, [])

    async def test_retry_order_unknown_id(self):
        workflow = self._workflow(InMemoryOrderStore(), ScriptedAdapter())

        with self.assertRaises(OrderNotFound):
            await workflow.retry_order("missing")

    async def test_single_retry_ignores_ceiling(self):
        store = InMemoryOrderStore([make_stored_order("order-1", fiscal_retry_count=3)])
        workflow = self._workflow(store, ScriptedAdapter(), max_retry_count=3)

        result = await workflow.retry_order("order-1")

        self.assertTrue(result.success)
        self.assertEqual(self.sleep.calls, [])

    async def test_batch_processes_oldest_first_with_throttle(self):
        store = InMemoryOrderStore(
            [
                make_stored_order("newest", created_at=minutes_ago(1)),
                make_stored_order("oldest", created_at=minutes_ago(30)),
                make_stored_order("middle", created_at=minutes_ago(10)),
                make_stored_order("done", created_at=minutes_ago(60), fiscal_status=FiscalStatus.SUCCESS),
            ]
        )
        adapter = ScriptedAdapter([_failure("still down")])
        workflow = self._workflow(store, adapter)

        summary = await workflow.retry_failed_orders()

        self.assertEqual([call.order_id for call in adapter.emit_calls], ["oldest", "middle", "newest"])
        self.assertEqual(self.sleep.calls, [0.5, 0.5])
        self.assertEqual(summary, RetrySummary(attempted=3, succeeded=2))
        self.assertEqual(str(summary), "2/3")
        self.assertEqual(summary.failed, 1)
        self.assertEqual(store.orders["oldest"].fiscal_status, FiscalStatus.ERROR)
        self.assertEqual(store.orders["middle"].fiscal_status, FiscalStatus.SUCCESS)

    async def test_batch_is_bounded(self):
        store = InMemoryOrderStore(
            [make_stored_order(f"order-{index}", created_at=minutes_ago(index)) for index in range(15)]
        )
        adapter = ScriptedAdapter()
        workflow = self._workflow(store, adapter, batch_size=10)

        summary = await workflow.retry_failed_orders()

        self.assertEqual(summary.attempted, 10)
        self.assertEqual(len(adapter.emit_calls), 10)
        self.assertEqual(adapter.emit_calls[0].order_id, "order-14")

    async def test_batch_limit_overrides_batch_size(self):
        store = InMemoryOrderStore(
            [make_stored_order(f"order-{index}", created_at=minutes_ago(index)) for index in range(5)]
        )
        workflow = self._workflow(store, ScriptedAdapter(), batch_size=10)

        summary = await workflow.retry_failed_orders(limit=2)

        self.assertEqual(summary.attempted, 2)

    async def test_batch_skips_orders_at_retry_ceiling(self):
        store = InMemoryOrderStore(
            [
                make_stored_order("exhausted", created_at=minutes_ago(5), fiscal_retry_count=3),
                make_stored_order("fresh", created_at=minutes_ago(1), fiscal_retry_count=2),
            ]
        )
        adapter = ScriptedAdapter()
        workflow = self._workflow(store, adapter, max_retry_count=3)

        summary = await workflow.retry_failed_orders()

        self.assertEqual([call.order_id for call in adapter.emit_calls], ["fresh"])
        self.assertEqual(summary.attempted, 1)
        self.assertEqual(store.orders["exhausted"].fiscal_status, FiscalStatus.ERROR)

    async def test_batch_skips_orders_fiscalized_meanwhile(self):
        store = InMemoryOrderStore(
            [
                make_stored_order("first", created_at=minutes_ago(5)),
                make_stored_order("second", created_at=minutes_ago(1)),
            ]
        )
        adapter = ScriptedAdapter()
        workflow = self._workflow(store, adapter)

        async def fiscalize_second(seconds):
            await store.mark_fiscal_success("second", external_id="ELSEWHERE", pdf_url=None)

        workflow._sleep = fiscalize_second
        summary = await workflow.retry_failed_orders()

        self.assertEqual([call.order_id for call in adapter.emit_calls], ["first"])
        self.assertEqual(summary, RetrySummary(attempted=2, succeeded=1, skipped=1))
        self.assertEqual(str(summary), "1/1")
        self.assertEqual(summary.failed, 0)
        self.assertEqual(store.orders["second"].fiscal_external_id, "ELSEWHERE")

    async def test_batch_continues_past_vanished_order(self):
        store = InMemoryOrderStore(
            [
                make_stored_order("a", created_at=minutes_ago(30)),
                make_stored_order("b", created_at=minutes_ago(20)),
                make_stored_order("c", created_at=minutes_ago(10)),
            ]
        )
        adapter = ScriptedAdapter()
        workflow = self._workflow(store, adapter)

        async def delete_b(seconds):
            store.orders.pop("b", None)

        workflow._sleep = delete_b
        with self.assertLogs("fiscal.workflows", level="ERROR") as logs:
            summary = await workflow.retry_failed_orders()

        self.assertEqual([call.order_id for call in adapter.emit_calls], ["a", "c"])
        self.assertEqual(summary, RetrySummary(attempted=3, succeeded=2))
        self.assertEqual(summary.failed, 1)
        self.assertEqual(store.orders["c"].fiscal_status, FiscalStatus.SUCCESS)
        self.assertIn("fiscal.retry.order_failed order_id=b", logs.output[0])

    async def test_batch_continues_past_unrecorded_success(self):
        store = UnrecordableStore(
            [
                make_stored_order("a", created_at=minutes_ago(30)),
                make_stored_order("b", created_at=minutes_ago(20)),
            ]
        )
        adapter = ScriptedAdapter([FiscalProviderResult(success=True, external_id="EXT-A"), _failure()])
        workflow = self._workflow(store, adapter)

        with self.assertLogs("fiscal.workflows", level="ERROR"):
            summary = await workflow.retry_failed_orders()

        self.assertEqual([call.order_id for call in adapter.emit_calls], ["a", "b"])
        self.assertEqual(summary, RetrySummary(attempted=2, succeeded=0))
        self.assertEqual(store.orders["a"].fiscal_status, FiscalStatus.PENDING)
        self.assertEqual(store.orders["b"].fiscal_status, FiscalStatus.ERROR)

        with self.assertLogs("fiscal.workflows", level="ERROR"):
            second = await workflow.retry_failed_orders()
        self.assertEqual([call.order_id for call in adapter.emit_calls], ["a", "b", "b"])
        self.assertEqual(second.attempted, 1)

    async def test_duplicate_retry_does_not_consume_attempt(self):
        store = InMemoryOrderStore([make_stored_order("order-1", fiscal_retry_count=1)])
        workflow = self._workflow(store, ScriptedAdapter([_failure("busy", DUPLICATE_PROCESSING)]))

        result = await workflow.retry_order("order-1")

        self.assertEqual(result.error_code, DUPLICATE_PROCESSING)
        order = store.orders["order-1"]
        self.assertEqual(order.fiscal_retry_count, 1)
        self.assertEqual(order.fiscal_status, FiscalStatus.ERROR)

    async def test_empty_batch(self):
        workflow = self._workflow(InMemoryOrderStore(), ScriptedAdapter())

        summary = await workflow.retry_failed_orders()

        self.assertEqual(str(summary), "0/0")
        self.assertEqual(self.sleep.calls, [])


class VoidReceiptWorkflowTests(SimpleTestCase):
    async def test_void_records_audit(self):
        adapter = ScriptedAdapter()
        service = build_service(adapter)
        store = InMemoryOrderStore()
        emitted = await adapter.emit_receipt(build_fiscal_order_data(make_stored_order("order-1")))

        result = await void_receipt(service, store, emitted.external_id)

        self.assertTrue(result.success)
        audit = store.audits[0]
        self.assertEqual(audit.action, FiscalAuditLog.Action.VOID)
        self.assertEqual(audit.external_id, emitted.external_id)
        self.assertEqual(audit.status, FiscalAuditLog.Status.SUCCESS)

    async def test_void_failure_is_audited(self):
        service = build_service(ScriptedAdapter())
        store = InMemoryOrderStore()

        result = await void_receipt(service, store, "EXT-missing")

        self.assertFalse(result.success)
        self.assertEqual(store.audits[0].status, FiscalAuditLog.Status.ERROR)
        self.assertEqual(store.audits[0].error_code, "NOT_FOUND")

    async def test_void_disabled_is_not_audited(self):
        adapter = ScriptedAdapter()
        store = InMemoryOrderStore()

        result = await void_receipt(build_service(adapter, void_enabled=False), store, "EXT-1")

        self.assertEqual(result.error_code, "VOID_DISABLED")
        self.assertEqual(store.audits, [])
        self.assertEqual(adapter.void_calls, [])
