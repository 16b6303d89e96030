"""
Unit tests for RetryContext.

The context is driven directly with plain callables here; discovery of the
callable from the call stack is covered by the engine tests.
"""

import pytest

from selfretry.retry.context import INVALID_DESCRIPTION, RetryContext, RetryStatus


class Flaky:
    """Callable failing a fixed number of times before returning."""

    def __init__(self, failures: int, result: object = "ok", error: type[Exception] = ValueError):
        self.failures = failures
        self.result = result
        self.error = error
        self.calls: list[tuple] = []

    def __call__(self, *args):
        self.calls.append(args)
        if len(self.calls) <= self.failures:
            raise self.error(f"failure {len(self.calls)}")
        return self.result


def always_fails(*args):
    raise RuntimeError("down")


class TestRunCurrentMethod:
    """Test the attempt loop."""

    def test_success_on_first_attempt(self):
        operation = Flaky(failures=0, result=42)
        context = RetryContext(operation, arguments=(1, 2))

        assert context.run_current_method() is True
        assert context.result == 42
        assert context.status is RetryStatus.SUCCEEDED
        assert context.is_success
        assert operation.calls == [(1, 2)]
        assert context.failures == ()

    def test_retries_until_success(self):
        operation = Flaky(failures=2)
        context = RetryContext(operation, retry_limit=3)

        assert context.run_current_method() is True
        assert len(operation.calls) == 3
        assert [f.attempt for f in context.failures] == [1, 2]
        assert all(f.will_retry for f in context.failures)
        assert context.failures[0].error_type == "ValueError"
        assert context.failures[0].message == "failure 1"

    def test_exhaustion_reraises_last_error(self):
        errors = []

        def failing():
            error = RuntimeError(f"attempt {len(errors) + 1}")
            errors.append(error)
            raise error

        context = RetryContext(failing, retry_limit=2)

        with pytest.raises(RuntimeError) as exc_info:
            context.run_current_method()

        assert len(errors) == 3
        assert exc_info.value is errors[-1]
        assert context.status is RetryStatus.EXHAUSTED
        assert not context.is_success
        assert not context.has_next
        assert [f.will_retry for f in context.failures] == [True, True, False]

    def test_zero_retry_limit_invokes_once(self):
        operation = Flaky(failures=1)
        context = RetryContext(operation, retry_limit=0)

        with pytest.raises(ValueError):
            context.run_current_method()
        assert len(operation.calls) == 1

    def test_has_next_while_budget_left(self):
        seen = []
        context = RetryContext(Flaky(failures=2), retry_limit=1)
        context.set_failure_handler(lambda ctx, error: seen.append(ctx.has_next))

        with pytest.raises(ValueError):
            context.run_current_method()
        assert seen == [True, False]

    def test_base_exceptions_are_not_retried(self):
        operation = Flaky(failures=1, error=KeyboardInterrupt)
        context = RetryContext(operation, retry_limit=3)

        with pytest.raises(KeyboardInterrupt):
            context.run_current_method()
        assert len(operation.calls) == 1
        assert context.status is RetryStatus.INTERRUPTED
        assert context.run_current_method() is False
        assert len(operation.calls) == 1

    def test_recursion_error_is_not_retried(self):
        operation = Flaky(failures=1, error=RecursionError)
        context = RetryContext(operation, retry_limit=3)

        with pytest.raises(RecursionError):
            context.run_current_method()

        assert len(operation.calls) == 1
        assert context.status is RetryStatus.INTERRUPTED
        assert context.failures == ()

    def test_interrupted_context_is_evicted(self, store):
        context = RetryContext(Flaky(failures=1, error=KeyboardInterrupt), key="app#run", store=store)
        store.put("app#run", context)

        with pytest.raises(KeyboardInterrupt):
            context.run_current_method()

        assert "app#run" not in store

    def test_reentry_while_running_returns_false(self):
        observed = []

        def operation():
            observed.append(context.run_current_method())
            observed.append(context.is_running)
            return "done"

        context = RetryContext(operation)

        assert context.run_current_method() is True
        assert observed == [False, True]

    def test_finished_context_does_not_run_again(self):
        operation = Flaky(failures=0)
        context = RetryContext(operation)
        context.run_current_method()

        assert context.run_current_method() is True
        assert len(operation.calls) == 1

    def test_exhausted_context_does_not_run_again(self):
        operation = Flaky(failures=5)
        context = RetryContext(operation, retry_limit=0)
        with pytest.raises(ValueError):
            context.run_current_method()

        assert context.run_current_method() is False
        assert len(operation.calls) == 1


class TestFailureHandler:
    """Test failure handler invocation and containment."""

    def test_called_after_every_failure(self):
        calls = []
        context = RetryContext(Flaky(failures=2), retry_limit=3)
        context.set_failure_handler(lambda ctx, error: calls.append((ctx, str(error))))

        context.run_current_method()

        assert calls == [(context, "failure 1"), (context, "failure 2")]
        assert context.failure_handler is not None

    def test_handler_updates_arguments_for_next_attempt(self):
        operation = Flaky(failures=2)
        context = RetryContext(operation, arguments=("primary", 1), retry_limit=3)
        context.set_failure_handler(lambda ctx, error: ctx.update_arguments("fallback"))

        context.run_current_method()

        assert operation.calls == [("primary", 1), ("fallback", 1), ("fallback", 1)]

    def test_handler_errors_are_contained(self, mock_failure_logger):
        def handler(ctx, error):
            raise LookupError("handler broke")

        context = RetryContext(Flaky(failures=2), retry_limit=3)
        context.set_failure_handler(handler)

        assert context.run_current_method() is True
        assert [e.attempt for e in context.handler_errors] == [1, 2]
        assert isinstance(context.handler_errors[0].error, LookupError)

        events = [c.args[0] for c in mock_failure_logger.error.call_args_list]
        assert events.count("Failure handler raised") == 2

    def test_handler_error_does_not_replace_attempt_error(self):
        def handler(ctx, error):
            raise LookupError("handler broke")

        context = RetryContext(always_fails, retry_limit=1)
        context.set_failure_handler(handler)

        with pytest.raises(RuntimeError, match="down"):
            context.run_current_method()


class TestSetup:
    """Test argument, limit and result accessors."""

    def test_update_arguments_overwrites_shorter_length(self):
        context = RetryContext(always_fails, arguments=(1, 2, 3))

        context.update_arguments(9)
        assert context.arguments == (9, 2, 3)

        context.update_arguments(7, 8, 9, 10)
        assert context.arguments == (7, 8, 9)

        context.update_arguments()
        assert context.arguments == (7, 8, 9)

    def test_set_retry_limit(self):
        context = RetryContext(always_fails)
        assert context.set_retry_limit(5) is context
        assert context.retry_limit == 5

    def test_negative_retry_limit(self):
        with pytest.raises(ValueError):
            RetryContext(always_fails, retry_limit=-1)
        with pytest.raises(ValueError):
            RetryContext(always_fails).set_retry_limit(-1)

    def test_retry_limit_fixed_once_started(self):
        context = RetryContext(Flaky(failures=0))
        context.run_current_method()
        context.set_retry_limit(10)
        assert context.retry_limit == 3

    def test_get_result_runs_loop(self):
        operation = Flaky(failures=1, result=[1, 2])
        context = RetryContext(operation)

        assert context.get_result() == [1, 2]
        assert len(operation.calls) == 2

    def test_get_result_with_expected_type(self):
        context = RetryContext(Flaky(failures=0, result="text"))

        assert context.get_result(str) == "text"
        assert context.get_result(int) is None

    def test_accessors(self):
        def method(a, b):
            return a + b

        target = object()
        context = RetryContext(method, target, [1, 2], retry_limit=4, description="d", called_line=7)

        assert context.method is method
        assert context.target is target
        assert context.arguments == (1, 2)
        assert context.retry_limit == 4
        assert context.description == "d"
        assert context.called_line == 7
        assert context.is_runnable
        assert not context.is_running
        assert context.status is RetryStatus.RUNNABLE


class TestInvalidContext:
    """Test the context handed out for unresolvable call sites."""

    def test_never_runs(self, mock_failure_logger):
        context = RetryContext.invalid()

        assert context.run_current_method() is False
        assert context.status is RetryStatus.INVALID
        assert not context.is_runnable
        assert context.description == INVALID_DESCRIPTION
        mock_failure_logger.error.assert_called_once_with(
            "Cannot run retry context", description=INVALID_DESCRIPTION
        )

    def test_setters_are_noops(self):
        context = RetryContext.invalid()

        assert context.set_failure_handler(lambda ctx, error: None) is context
        assert context.failure_handler is None
        context.update_arguments(1)
        assert context.arguments == ()
        context.set_retry_limit(9)
        assert context.retry_limit == 3

    def test_get_result_is_none(self):
        assert RetryContext.invalid().get_result() is None

    def test_logging_disabled(self, mock_failure_logger):
        RetryContext.invalid(log_enabled=False).run_current_method()
        mock_failure_logger.error.assert_not_called()


class TestDiagnostics:
    """Test failure records and emitted events."""

    def test_failure_event_fields(self, mock_failure_logger):
        def lookup(key):
            raise KeyError(key)

        context = RetryContext(
            lookup, arguments=("k",), retry_limit=0, description="lookup is called", code=lookup.__code__
        )
        with pytest.raises(KeyError):
            context.run_current_method()

        mock_failure_logger.error.assert_called_once()
        event, fields = mock_failure_logger.error.call_args.args[0], mock_failure_logger.error.call_args.kwargs
        assert event == "Retry attempt failed"
        assert fields["description"] == "lookup is called"
        assert fields["method"] == "lookup"
        assert fields["file"] == lookup.__code__.co_filename
        assert fields["attempt"] == 1
        assert fields["retry_limit"] == 0
        assert fields["error_type"] == "KeyError"
        assert fields["error_message"] == "'k'"

    def test_failure_record_location(self):
        def lookup():
            raise KeyError("k")

        context = RetryContext(lookup, retry_limit=0, code=lookup.__code__)
        with pytest.raises(KeyError):
            context.run_current_method()

        [record] = context.failures
        assert record.filename == lookup.__code__.co_filename
        assert record.lineno == lookup.__code__.co_firstlineno + 1

    def test_logging_disabled(self, mock_failure_logger):
        context = RetryContext(Flaky(failures=1), log_enabled=False)
        context.run_current_method()
        mock_failure_logger.error.assert_not_called()
        assert len(context.failures) == 1


class TestEviction:
    """Test removal from the store when the loop ends."""

    def test_evicted_after_success(self, store):
        context = RetryContext(Flaky(failures=1), key="app#run", store=store)
        store.put("app#run", context)

        context.run_current_method()

        assert "app#run" not in store

    def test_evicted_after_exhaustion(self, store):
        context = RetryContext(always_fails, retry_limit=1, key="app#run", store=store)
        store.put("app#run", context)

        with pytest.raises(RuntimeError):
            context.run_current_method()

        assert "app#run" not in store

    def test_does_not_evict_another_context(self, store):
        replacement = RetryContext(always_fails)
        context = RetryContext(Flaky(failures=0), key="app#run", store=store)
        store.put("app#run", replacement)

        context.run_current_method()

        assert store.get("app#run") is replacement
