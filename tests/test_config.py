import dataclasses
import unittest

from pingpong.config import ExchangeConfig


class ExchangeConfigTest(unittest.TestCase):
    def test_defaults_match_reference_values(self):
        config = ExchangeConfig()
        self.assertEqual(config.port, 9889)
        self.assertEqual(config.rounds, 6)
        self.assertEqual(config.trigger, "PING")
        self.assertEqual(config.ack, "PONG")
        self.assertEqual(config.host, "127.0.0.1")

    def test_rejects_zero_rounds(self):
        with self.assertRaises(ValueError):
            ExchangeConfig(rounds=0)

    def test_rejects_tokens_with_terminator(self):
        with self.assertRaises(ValueError):
            ExchangeConfig(trigger="PI\0NG")
        with self.assertRaises(ValueError):
            ExchangeConfig(ack="")

    def test_is_immutable(self):
        config = ExchangeConfig()
        with self.assertRaises(dataclasses.FrozenInstanceError):
            config.rounds = 10


if __name__ == "__main__":
    unittest.main()
