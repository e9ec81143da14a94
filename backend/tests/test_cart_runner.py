import threading
from catalogo.cart.runner import BackgroundRunner, InlineRunner


def test_inline_runner_runs_immediately_and_logs_failures(caplog):
    calls = []
    runner = InlineRunner()
    runner.submit('k', lambda: calls.append(1))
    assert calls == [1]

    def boom():
        raise RuntimeError('x')

    runner.submit('k', boom)
    assert runner.wait() is True
    assert 'Detached job k failed' in caplog.text


def test_background_runner_coalesces_queued_jobs():
    runner = BackgroundRunner(name='test-runner')
    calls = []
    started = threading.Event()
    gate = threading.Event()

    def first():
        started.set()
        gate.wait(5)
        calls.append('first')

    runner.submit('cart', first)
    assert started.wait(5)
    # both land while 'first' is running; only the latest one is kept
    runner.submit('cart', lambda: calls.append('second'))
    runner.submit('cart', lambda: calls.append('third'))
    gate.set()
    assert runner.wait(5) is True
    assert calls == ['first', 'third']


def test_background_runner_keeps_distinct_keys():
    runner = BackgroundRunner()
    calls = []
    started = threading.Event()
    gate = threading.Event()

    def blocker():
        started.set()
        gate.wait(5)

    runner.submit('a', blocker)
    assert started.wait(5)
    runner.submit('b', lambda: calls.append('b'))
    runner.submit('c', lambda: calls.append('c'))
    gate.set()
    assert runner.wait(5) is True
    assert calls == ['b', 'c']


def test_background_runner_survives_failing_job():
    runner = BackgroundRunner()
    calls = []

    def boom():
        raise RuntimeError('x')

    runner.submit('a', boom)
    assert runner.wait(5) is True
    runner.submit('a', lambda: calls.append('ok'))
    assert runner.wait(5) is True
    assert calls == ['ok']
