import threading

from canlink import metrics


def test_counters_start_at_zero():
    assert metrics.get('can_write') == 0
    assert metrics.get_all() == {}


def test_inc_and_reset():
    metrics.inc('can_write')
    metrics.inc('can_write', 4)
    assert metrics.get('can_write') == 5
    snapshot = metrics.get_all()
    metrics.inc('can_write')
    assert snapshot == {'can_write': 5}
    metrics.reset_all()
    assert metrics.get_all() == {}


def test_inc_is_thread_safe():
    def bump():
        for _ in range(1000):
            metrics.inc('link_init_attempt')

    threads = [threading.Thread(target=bump) for _ in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    assert metrics.get('link_init_attempt') == 8000
