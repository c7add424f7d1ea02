import threading

from lawdir.pipeline.budget import RunBudget


def test_reserve_caps_at_remaining():
    budget = RunBudget(max_records=5, max_pages=20)

    assert budget.remaining() == 5
    assert budget.reserve(3) == 3
    assert budget.reserve(8) == 2
    assert budget.reserve(1) == 0
    assert budget.records_emitted == 5
    assert budget.records_exhausted()


def test_zero_means_unbounded():
    budget = RunBudget(max_records=0, max_pages=20)

    assert budget.remaining() is None
    assert budget.reserve(500) == 500
    assert not budget.records_exhausted()


def test_page_ceiling():
    budget = RunBudget(max_records=0, max_pages=2)
    assert budget.start_page() == 1
    assert not budget.pages_exhausted()
    assert budget.start_page() == 2
    assert budget.pages_exhausted()


def test_counters_and_method():
    budget = RunBudget()
    assert budget.extraction_method == "None"
    budget.record_method("HTML Parsing")
    budget.add_blocked(2)
    budget.add_blocked(1)
    assert budget.extraction_method == "HTML Parsing"
    assert budget.blocked_profiles == 3
    assert budget.elapsed_s() >= 0.0


def test_concurrent_reservations_never_overshoot():
    budget = RunBudget(max_records=50, max_pages=20)
    granted = []
    lock = threading.Lock()

    def worker():
        for _ in range(10):
            g = budget.reserve(3)
            with lock:
                granted.append(g)

    threads = [threading.Thread(target=worker) for _ in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert sum(granted) == 50
    assert budget.records_emitted == 50


def test_release_returns_slots():
    budget = RunBudget(max_records=5, max_pages=20)
    budget.reserve(5)

    budget.release(3)

    assert budget.records_emitted == 2
    assert budget.remaining() == 3
    budget.release(10)
    assert budget.records_emitted == 0
