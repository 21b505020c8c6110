import unittest

from fakes import FakeSocket

from graphite_client.batch_sender import DEFAULT_BUFFER_SIZE, FLUSH_THRESHOLD, StreamBuffer, send_batch
from graphite_client.encoder import encode_bytes
from graphite_client.errors import SendError
from graphite_client.metric import Metric
from graphite_client.transport import Datagram, Disabled, Stream

FIXED_CLOCK = lambda: 1700000000.0  # noqa: E731


def make_metrics(n: int, value: str = "1"):
    return [Metric(f"app.requests.{i}", value, 1700000000 + i) for i in range(n)]


class TestStreamBuffer(unittest.TestCase):
    def test_write_is_held_until_flush(self):
        sink = FakeSocket()
        buf = StreamBuffer(sink, size=64)
        buf.write(b"abc\n")
        self.assertEqual(sink.writes, [])
        self.assertEqual(buf.buffered(), 4)
        self.assertEqual(buf.available(), 60)
        buf.flush()
        self.assertEqual(sink.writes, [b"abc\n"])
        self.assertEqual(buf.buffered(), 0)

    def test_flush_of_empty_buffer_writes_nothing(self):
        sink = FakeSocket()
        StreamBuffer(sink).flush()
        self.assertEqual(sink.attempts, 0)

    def test_write_larger_than_free_space_flushes_first(self):
        sink = FakeSocket()
        buf = StreamBuffer(sink, size=8)
        buf.write(b"12345")
        buf.write(b"6789")
        self.assertEqual(sink.writes, [b"12345"])
        buf.flush()
        self.assertEqual(sink.data, b"123456789")

    def test_oversized_write_goes_straight_to_sink(self):
        sink = FakeSocket()
        buf = StreamBuffer(sink, size=4)
        buf.write(b"ab")
        buf.write(b"0123456789")
        self.assertEqual(sink.writes, [b"ab", b"0123456789"])
        self.assertEqual(buf.buffered(), 0)

    def test_rejects_non_positive_size(self):
        with self.assertRaises(ValueError):
            StreamBuffer(FakeSocket(), size=0)


class TestStreamBatch(unittest.TestCase):
    def test_small_batch_is_a_single_write(self):
        sink = FakeSocket()
        metrics = make_metrics(3)
        n = send_batch(metrics, sink, Stream(), prefix="web1")
        self.assertEqual(n, 3)
        self.assertEqual(len(sink.writes), 1)
        self.assertEqual(
            sink.data,
            b"web1.app.requests.0 1 1700000000\n"
            b"web1.app.requests.1 1 1700000001\n"
            b"web1.app.requests.2 1 1700000002\n",
        )

    def test_large_batch_matches_one_by_one_bytes(self):
        metrics = make_metrics(400)

        batched = FakeSocket()
        send_batch(metrics, batched, Stream(), prefix="p")

        one_by_one = FakeSocket()
        for m in metrics:
            send_batch([m], one_by_one, Stream(), prefix="p")

        self.assertGreater(len(batched.data), DEFAULT_BUFFER_SIZE)
        self.assertGreater(len(batched.writes), 1)
        self.assertEqual(batched.data, one_by_one.data)
        self.assertEqual(batched.data, b"".join(encode_bytes(m, "p") for m in metrics))

    def test_flushes_when_free_space_drops_below_threshold(self):
        sink = FakeSocket()
        send_batch(make_metrics(400), sink, Stream())
        for chunk in sink.writes[:-1]:
            self.assertLessEqual(len(chunk), DEFAULT_BUFFER_SIZE)
            self.assertGreater(len(chunk), DEFAULT_BUFFER_SIZE - FLUSH_THRESHOLD)

    def test_empty_batch_writes_nothing(self):
        sink = FakeSocket()
        self.assertEqual(send_batch([], sink, Stream()), 0)
        self.assertEqual(sink.attempts, 0)

    def test_unset_metric_produces_no_line(self):
        sink = FakeSocket()
        metrics = [Metric(), Metric("a", "1", 5), Metric(), Metric()]
        n = send_batch(metrics, sink, Stream())
        self.assertEqual(n, 1)
        self.assertEqual(sink.data, b"a 1 5\n")

    def test_zero_timestamp_filled_from_clock(self):
        sink = FakeSocket()
        send_batch([Metric("a", "1", 0)], sink, Stream(), clock=FIXED_CLOCK)
        self.assertEqual(sink.data, b"a 1 1700000000\n")

    def test_unencodable_name_does_not_drop_buffered_lines(self):
        sink = FakeSocket()
        n = send_batch([Metric("good", "1", 1), Metric("bad\ud800", "1", 1)], sink, Stream())
        self.assertEqual(n, 2)
        self.assertEqual(sink.data, b"good 1 1\nbad? 1 1\n")

    def test_failed_flush_aborts_rest_of_batch(self):
        # Each line nearly fills the buffer, so every line gets its own flush.
        big = "x" * 3680
        metrics = make_metrics(5, value=big)
        sink = FakeSocket(fail_on=2)
        with self.assertRaises(SendError) as ctx:
            send_batch(metrics, sink, Stream())
        self.assertIsInstance(ctx.exception.__cause__, BrokenPipeError)
        self.assertEqual(sink.attempts, 2)
        self.assertEqual(sink.data, encode_bytes(metrics[0]))


class TestDatagramBatch(unittest.TestCase):
    def test_one_write_per_metric(self):
        sink = FakeSocket()
        metrics = make_metrics(3)
        send_batch(metrics, sink, Datagram(), prefix="edge")
        self.assertEqual(
            sink.writes,
            [
                b"edge.app.requests.0 1 1700000000\n",
                b"edge.app.requests.1 1 1700000001\n",
                b"edge.app.requests.2 1 1700000002\n",
            ],
        )

    def test_unset_metric_produces_no_packet(self):
        sink = FakeSocket()
        n = send_batch([Metric(), Metric("b", "2", 7)], sink, Datagram())
        self.assertEqual(n, 1)
        self.assertEqual(sink.writes, [b"b 2 7\n"])

    def test_failing_write_stops_batch(self):
        metrics = make_metrics(6)
        sink = FakeSocket(fail_on=3)
        with self.assertRaises(SendError):
            send_batch(metrics, sink, Datagram())
        self.assertEqual(sink.attempts, 3)
        self.assertEqual(len(sink.writes), 2)


class TestDisabledModeRejected(unittest.TestCase):
    def test_disabled_mode_is_not_a_transport(self):
        with self.assertRaises(ValueError):
            send_batch([Metric("a", "1", 1)], FakeSocket(), Disabled())


if __name__ == "__main__":
    unittest.main()
