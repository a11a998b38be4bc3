#!/usr/bin/env python3
"""
Tests for broadcast channels
"""

import unittest
from pathlib import Path
from unittest.mock import Mock
import sys

sys.path.insert(0, str(Path(__file__).parent.parent))

from ignore_status.ignore.channels import Channel
from ignore_status.ignore.errors import ChannelClosedError


class TestChannel(unittest.TestCase):

    def setUp(self):
        self.channel = Channel("test")

    def test_publish_reaches_every_subscriber(self):
        first = self.channel.subscribe()
        callback = Mock()
        second = self.channel.subscribe(callback)

        self.assertEqual(self.channel.publish("event"), 2)

        self.assertEqual(first.get(timeout=0.1), "event")
        self.assertEqual(second.drain(), [])
        callback.assert_called_once_with("event")

    def test_publish_without_subscribers(self):
        self.assertEqual(self.channel.publish("event"), 0)

    def test_get_times_out_without_producers(self):
        subscription = self.channel.subscribe()
        self.assertIsNone(subscription.get(timeout=0.05))

    def test_closed_subscription_stops_receiving(self):
        subscription = self.channel.subscribe()
        subscription.close()
        subscription.close()

        self.assertEqual(self.channel.subscriber_count(), 0)
        self.assertEqual(self.channel.publish("event"), 0)
        with self.assertRaises(ChannelClosedError):
            subscription.get(timeout=0.05)

    def test_events_before_close_can_still_be_read(self):
        subscription = self.channel.subscribe()
        self.channel.publish("event")
        subscription.close()

        self.assertEqual(subscription.get(timeout=0.1), "event")
        with self.assertRaises(ChannelClosedError):
            subscription.get(timeout=0.05)
        with self.assertRaises(ChannelClosedError):
            subscription.get(timeout=0.05)

    def test_closing_channel_closes_subscriptions(self):
        subscription = self.channel.subscribe()
        self.channel.close()

        self.assertTrue(subscription.closed)
        self.assertTrue(self.channel.closed)
        self.assertEqual(self.channel.publish("event"), 0)

        late = self.channel.subscribe()
        self.assertTrue(late.closed)
        self.assertEqual(late.drain(), [])

    def test_callback_subscription_does_not_queue(self):
        callback = Mock()
        subscription = self.channel.subscribe(callback)

        for i in range(100):
            self.channel.publish(i)

        self.assertEqual(callback.call_count, 100)
        self.assertEqual(subscription._queue.qsize(), 0)
        self.assertIsNone(subscription.get(timeout=0.05))

    def test_failing_callback_does_not_break_publish(self):
        failing = self.channel.subscribe(Mock(side_effect=RuntimeError("boom")))
        healthy = self.channel.subscribe()

        self.assertEqual(self.channel.publish("event"), 2)
        self.assertEqual(healthy.drain(), ["event"])
        self.assertEqual(failing.drain(), [])


if __name__ == "__main__":
    unittest.main()
