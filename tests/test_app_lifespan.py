import threading

from fastapi.testclient import TestClient

from schoolshop import main
from schoolshop.services.order_expiry import SweepResult, start_periodic_sweep


def test_lifespan_sweeps_off_loop_and_stops_timer(monkeypatch, storage) -> None:
    seen = {}

    def _sweep():
        seen.setdefault("sweep_thread", threading.get_ident())
        return SweepResult(success=True)

    def _start(interval_seconds):
        seen["loop_thread"] = threading.get_ident()
        seen["task"] = start_periodic_sweep(interval_seconds, sweep=_sweep)
        return seen["task"]

    monkeypatch.setattr(main, "run_sweep", _sweep)
    monkeypatch.setattr(main, "start_periodic_sweep", _start)
    monkeypatch.setattr(main, "SWEEP_IN_PROCESS", True)

    with TestClient(main.create_app(storage=storage)) as client:
        assert client.get("/health").status_code == 200
        assert not seen["task"].done()

    # sweep startowy nie blokuje petli zdarzen
    assert seen["sweep_thread"] != seen["loop_thread"]
    assert seen["task"].cancelled()


def test_failed_startup_sweep_does_not_block_app(monkeypatch, storage) -> None:
    monkeypatch.setattr(main, "run_sweep", lambda: SweepResult(success=False, error="db down"))

    with TestClient(main.create_app(storage=storage)) as client:
        assert client.get("/health").status_code == 200
