from datetime import timedelta
from unittest.mock import Mock, patch

import pytest

from waterhero_ingest.backfill import BackfillOrchestrator, backfill, iter_chunks
from waterhero_ingest.database import QuestDBWriter
from waterhero_ingest.errors import ConfigError, EncodeError, TransportError, WriteError
from waterhero_ingest.models import Reading, TimeRange

from .conftest import FakeClient, FakeWriter


@pytest.mark.parametrize("span,chunk_size", [
    (timedelta(days=10), timedelta(hours=24)),
    (timedelta(hours=25), timedelta(hours=24)),
    (timedelta(minutes=59), timedelta(hours=24)),
    (timedelta(days=3, minutes=7), timedelta(hours=5)),
    (timedelta(milliseconds=10), timedelta(milliseconds=3)),
])
def test_chunks_cover_range_contiguously(utc, span, chunk_size):
    start = utc(2024, 3, 1, 6, 30)
    time_range = TimeRange(start, start + span)

    chunks = list(iter_chunks(time_range, chunk_size))

    assert chunks[0].start == time_range.start
    assert chunks[-1].end == time_range.end
    for previous, current in zip(chunks, chunks[1:]):
        assert previous.end == current.start
    for index, chunk in enumerate(chunks):
        assert chunk.index == index
        assert chunk.start < chunk.end
        assert chunk.end - chunk.start <= chunk_size
        assert chunk.end <= time_range.end


def test_last_chunk_is_the_remainder(utc):
    start = utc(2024, 1, 1)
    chunks = list(iter_chunks(TimeRange(start, start + timedelta(hours=25)), timedelta(hours=24)))

    assert [c.end - c.start for c in chunks] == [timedelta(hours=24), timedelta(hours=1)]


def test_empty_range_yields_no_chunks(utc):
    point = utc(2024, 1, 1)
    assert list(iter_chunks(TimeRange(point, point), timedelta(hours=1))) == []


@pytest.mark.parametrize("chunk_size", [timedelta(0), timedelta(hours=-1)])
def test_non_positive_chunk_size_is_rejected(utc, chunk_size):
    client, writer = FakeClient(), FakeWriter()
    orchestrator = BackfillOrchestrator(client, writer, sleep=Mock())

    with pytest.raises(ConfigError):
        orchestrator.run(TimeRange(utc(2024, 1, 1), utc(2024, 1, 2)), chunk_size)

    assert client.calls == []


def test_reversed_range_is_rejected(utc):
    with pytest.raises(ConfigError):
        TimeRange(utc(2024, 1, 2), utc(2024, 1, 1))


def test_empty_range_returns_zero_total(utc, fake_client, fake_writer):
    sleep = Mock()
    point = utc(2024, 1, 1)

    result = BackfillOrchestrator(fake_client, fake_writer, sleep=sleep).run(
        TimeRange(point, point), timedelta(hours=24)
    )

    assert result.total_readings == 0
    assert result.chunks == 0
    assert fake_client.calls == []
    assert fake_writer.batches == []
    sleep.assert_not_called()


def test_ten_days_in_daily_chunks(utc):
    client, writer, sleep = FakeClient(per_chunk=3), FakeWriter(), Mock()
    start = utc(2024, 2, 1)

    result = BackfillOrchestrator(client, writer, chunk_delay=0.5, sleep=sleep).run(
        TimeRange(start, start + timedelta(days=10)), timedelta(hours=24)
    )

    assert len(client.calls) == 10
    assert len(writer.batches) == 10
    assert result.chunks == 10
    assert result.total_readings == 30
    assert result.chunk_counts == [3] * 10
    # One pause between each pair of chunks
    assert sleep.call_count == 9
    assert all(call.args == (0.5,) for call in sleep.call_args_list)


def test_chunks_run_in_order(utc):
    client, writer = FakeClient(), FakeWriter()
    start = utc(2024, 2, 1)

    BackfillOrchestrator(client, writer, sleep=Mock()).run(
        TimeRange(start, start + timedelta(hours=6)), timedelta(hours=2)
    )

    assert client.calls == [
        (start, start + timedelta(hours=2)),
        (start + timedelta(hours=2), start + timedelta(hours=4)),
        (start + timedelta(hours=4), start + timedelta(hours=6)),
    ]


def test_fetch_failure_aborts_before_writing_that_chunk(utc):
    client = FakeClient(fail_on=2, error=TransportError("connection reset"))
    writer, sleep = FakeWriter(), Mock()
    start = utc(2024, 2, 1)
    orchestrator = BackfillOrchestrator(client, writer, sleep=sleep)

    with pytest.raises(TransportError) as exc_info:
        orchestrator.run(TimeRange(start, start + timedelta(days=5)), timedelta(days=1))

    failing_start = start + timedelta(days=2)
    assert len(client.calls) == 3
    assert len(writer.batches) == 2
    assert sleep.call_count == 2
    assert exc_info.value.chunk_start == failing_start
    assert failing_start.isoformat() in str(exc_info.value)


def test_write_failure_aborts_the_run(utc):
    client = FakeClient()
    writer = Mock()
    writer.write_readings.side_effect = WriteError("broken pipe")
    start = utc(2024, 2, 1)

    with pytest.raises(WriteError) as exc_info:
        BackfillOrchestrator(client, writer, sleep=Mock()).run(
            TimeRange(start, start + timedelta(days=3)), timedelta(days=1)
        )

    assert len(client.calls) == 1
    assert exc_info.value.chunk_start == start


def test_encode_failure_is_annotated(utc):
    bad = Reading("1700000000000", "1", "ABC123", "not-a-number", "70")
    client = Mock()
    client.fetch_readings.return_value = [bad]
    start = utc(2024, 2, 1)

    with patch("waterhero_ingest.database.questdb_writer.socket.create_connection") as create_connection:
        with pytest.raises(EncodeError) as exc_info:
            BackfillOrchestrator(client, QuestDBWriter("localhost:9009"), sleep=Mock()).run(
                TimeRange(start, start + timedelta(hours=1)), timedelta(hours=24)
            )

    create_connection.assert_not_called()
    assert exc_info.value.chunk_start == start


def test_empty_chunk_opens_no_connection(utc):
    client = FakeClient(per_chunk=0)
    start = utc(2024, 2, 1)

    with patch("waterhero_ingest.database.questdb_writer.socket.create_connection") as create_connection:
        result = BackfillOrchestrator(client, QuestDBWriter("localhost:9009"), sleep=Mock()).run(
            TimeRange(start, start + timedelta(days=2)), timedelta(days=1)
        )

    create_connection.assert_not_called()
    assert result.total_readings == 0
    assert result.chunks == 2


def test_stop_is_checked_between_chunks(utc):
    client, writer = FakeClient(), FakeWriter()
    stop_after = iter([False, False, True])
    start = utc(2024, 2, 1)

    result = BackfillOrchestrator(
        client, writer, sleep=Mock(), should_stop=lambda: next(stop_after)
    ).run(TimeRange(start, start + timedelta(days=5)), timedelta(days=1))

    assert result.stopped is True
    assert result.chunks == 2
    assert len(client.calls) == 2


def test_negative_delay_is_rejected(fake_client, fake_writer):
    with pytest.raises(ConfigError):
        BackfillOrchestrator(fake_client, fake_writer, chunk_delay=-1)


def test_backfill_wires_collaborators_from_config(config, utc):
    start = utc(2024, 2, 1)
    with patch("waterhero_ingest.backfill.WaterHeroClient") as client_cls, \
            patch("waterhero_ingest.backfill.QuestDBWriter") as writer_cls, \
            patch("waterhero_ingest.backfill.time.sleep"):
        client_cls.return_value.fetch_readings.return_value = []
        writer_cls.return_value.write_readings.return_value = 0

        result = backfill(config, TimeRange(start, start + timedelta(days=2)), timedelta(days=1))

    client_cls.assert_called_once_with(config)
    writer_cls.assert_called_once_with("localhost:9009", timeout=None)
    assert client_cls.return_value.fetch_readings.call_count == 2
    assert result.total_readings == 0


@pytest.mark.parametrize("reading", [
    Reading("1700000000000", "1", "\ud800", "10", "70"),
    Reading("1700000000000", "1", "ABC123", "9" * 5000, "70"),
    Reading("1700000000000", "1", "ABC123", "99999999999999999999", "70"),
])
def test_unencodable_readings_abort_with_chunk_start(utc, reading):
    client = Mock()
    client.fetch_readings.return_value = [reading]
    start = utc(2024, 2, 1)

    with patch("waterhero_ingest.database.questdb_writer.socket.create_connection") as create_connection:
        with pytest.raises(EncodeError) as exc_info:
            BackfillOrchestrator(client, QuestDBWriter("localhost:9009"), sleep=Mock()).run(
                TimeRange(start, start + timedelta(hours=1)), timedelta(hours=24)
            )

    create_connection.assert_not_called()
    assert exc_info.value.chunk_start == start
