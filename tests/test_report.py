import io
import threading
import time

from reflectscan.report import ProgressReporter, Result, ResultCollector, write_console_report


def _hammer(fn, threads=50, per_thread=200):
    workers = [threading.Thread(target=lambda: [fn() for _ in range(per_thread)]) for _ in range(threads)]
    for t in workers:
        t.start()
    for t in workers:
        t.join()


def test_progress_counter_has_no_lost_updates():
    out = io.StringIO()
    progress = ProgressReporter(10000, interval=0.01, file=out)

    _hammer(progress.inc)
    progress.close()

    assert progress.completed == 10000
    assert progress.snapshot() == (10000, 10000)
    assert "[PROGRESS] 10000/10000 (100.0%)" in out.getvalue()


def test_progress_ticks_while_running():
    out = io.StringIO()
    progress = ProgressReporter(4, interval=0.01, file=out)
    progress.inc()
    progress.inc()
    time.sleep(0.1)
    assert "2/4 (50.0%)" in out.getvalue()
    progress.close()
    progress.close()


def _result(i, reflected=False, url="http://a.test/"):
    return Result(url=url, method="GET", parameter=f"p{i}", payload_value=f"v{i}", reflected=reflected,
                  status_code=200)


def test_collector_concurrent_appends():
    collector = ResultCollector()
    counter = iter(range(10 ** 6))
    lock = threading.Lock()

    def add():
        with lock:
            i = next(counter)
        collector.add(_result(i))

    _hammer(add)

    results = collector.results()
    assert len(results) == len(collector) == 10000
    assert len({r.parameter for r in results}) == 10000


def test_collector_returns_copies():
    collector = ResultCollector()
    collector.add(_result(1, reflected=True))
    snapshot = collector.results()
    collector.add(_result(2))

    assert len(snapshot) == 1
    snapshot.clear()
    assert len(collector.results()) == 2
    assert [r.parameter for r in collector.reflected()] == ["p1"]


def test_summary_none_found(capsys):
    assert write_console_report([_result(1), _result(2)]) == 0
    assert "No XSS reflections found" in capsys.readouterr().out


def test_summary_groups_by_url(capsys):
    results = [
        _result(2, True, "http://b.test/"),
        _result(1, True, "http://a.test/"),
        _result(3, False, "http://a.test/"),
        _result(0, True, "http://a.test/"),
    ]
    assert write_console_report(results) == 3

    out = capsys.readouterr().out
    assert "Total reflections found: 3" in out
    assert out.index("http://a.test/") < out.index("http://b.test/")
    assert out.index("p0") < out.index("p1")
    assert "p3" not in out
