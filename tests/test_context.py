import logging

from runmyway.models.domain import SearchAttempt
from runmyway.services.generation.context import GenerationContext


def test_seeded_contexts_draw_identical_sequences():
    first = GenerationContext.create(seed=11)
    second = GenerationContext.create(seed=11)

    assert [first.rng.random() for _ in range(5)] == [second.rng.random() for _ in range(5)]
    assert first.seed == 11


def test_cancel_sets_flag():
    context = GenerationContext.create()

    assert not context.cancelled
    context.cancel()
    assert context.cancelled


def test_failing_listener_does_not_block_others(caplog):
    context = GenerationContext.create()
    received = []

    def broken(attempt):
        raise RuntimeError("listener bug")

    context.subscribe(broken)
    context.subscribe(received.append)
    attempt = SearchAttempt(attempt_index=1, radius_factor=1.0, resulting_distance_km=5.0, deviation_km=0.0)

    with caplog.at_level(logging.WARNING):
        context.emit(attempt)

    assert received == [attempt]
    assert "listener bug" in caplog.text
