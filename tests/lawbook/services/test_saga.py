import pytest

from lawbook.services.saga import Saga


def test_run_returns_step_results_in_order() -> None:
    saga = Saga('demo').step('first', lambda: 1).step('second', lambda: 2)

    assert saga.run() == [1, 2]


def test_failure_unwinds_completed_steps_in_reverse_order() -> None:
    calls: list[str] = []

    def fail() -> None:
        raise RuntimeError('boom')

    saga = Saga('demo')
    saga.step('first', lambda: 'a', lambda result: calls.append(f'undo first {result}'))
    saga.step('second', lambda: 'b', lambda result: calls.append(f'undo second {result}'))
    saga.step('third', fail, lambda result: calls.append('undo third'))

    with pytest.raises(RuntimeError, match='boom'):
        saga.run()

    assert calls == ['undo second b', 'undo first a']


def test_failing_compensation_does_not_stop_unwind() -> None:
    calls: list[str] = []

    def broken_compensation(_) -> None:
        raise ValueError('cannot undo')

    def fail() -> None:
        raise RuntimeError('boom')

    saga = Saga('demo')
    saga.step('first', lambda: None, lambda _: calls.append('undo first'))
    saga.step('second', lambda: None, broken_compensation)
    saga.step('third', fail)

    with pytest.raises(RuntimeError, match='boom'):
        saga.run()

    assert calls == ['undo first']


def test_steps_after_failure_never_run() -> None:
    calls: list[str] = []

    def fail() -> None:
        raise RuntimeError('boom')

    saga = Saga('demo').step('first', fail).step('second', lambda: calls.append('second'))

    with pytest.raises(RuntimeError):
        saga.run()

    assert calls == []
