import threading

from packages.domain.waste_matching.decision_log import DecisionLog, DecisionStage


def test_records_render_in_append_order():
    log = DecisionLog()
    log.record(DecisionStage.INPUT, "Received 2 labels, processing 2", received=2)
    log.record(DecisionStage.SELECTION, "Winner: 'can'")

    assert log.render() == [
        "input: Received 2 labels, processing 2",
        "selection: Winner: 'can'",
    ]
    assert log.records[0].data == {"received": 2}
    assert len(log) == 2


def test_records_snapshot_is_a_copy():
    log = DecisionLog()
    log.record(DecisionStage.SEARCH, "No matches for 'bag'")
    snapshot = log.records
    log.record(DecisionStage.SEARCH, "No matches for 'box'")
    assert len(snapshot) == 1


def test_concurrent_writers_lose_nothing():
    log = DecisionLog()

    def writer(n):
        for i in range(200):
            log.record(DecisionStage.SEARCH, f"writer {n} line {i}")

    threads = [threading.Thread(target=writer, args=(n,)) for n in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    lines = log.render()
    assert len(lines) == 8 * 200
    assert len(set(lines)) == 8 * 200
