import logging
import unittest
from pathlib import Path
from tempfile import TemporaryDirectory
from unittest import mock

from weefee import cli


class TestParser(unittest.TestCase):
    def test_defaults(self) -> None:
        args = cli.build_parser().parse_args([])

        self.assertEqual(args.rescan_interval, 1.0)
        self.assertEqual(args.connect_timeout, 30.0)
        self.assertEqual(args.poll_interval, 0.2)
        self.assertEqual(args.secrets_grace, 2.0)
        self.assertIsNone(args.log_file)
        self.assertFalse(args.verbose)

    def test_timings_from_args(self) -> None:
        args = cli.build_parser().parse_args(["--connect-timeout", "45", "--secrets-grace", "0"])

        timings = cli.timings_from_args(args)

        self.assertEqual(timings.activation_timeout, 45.0)
        self.assertEqual(timings.missing_object_grace, 0.0)

    def test_rejects_non_positive_interval(self) -> None:
        parser = cli.build_parser()

        with mock.patch("sys.stderr"), self.assertRaises(SystemExit):
            parser.parse_args(["--rescan-interval", "0"])
        with mock.patch("sys.stderr"), self.assertRaises(SystemExit):
            parser.parse_args(["--secrets-grace", "-1"])


class TestLogging(unittest.TestCase):
    def tearDown(self) -> None:
        cli.configure_logging(None, False)

    def test_log_file_receives_records(self) -> None:
        with TemporaryDirectory() as temp_dir:
            path = Path(temp_dir) / "logs" / "weefee.log"
            cli.configure_logging(path, verbose=True)

            logging.getLogger("weefee.test").debug("scan finished")
            for handler in logging.getLogger().handlers:
                handler.flush()
                handler.close()

            self.assertIn("scan finished", path.read_text(encoding="utf-8"))

    def test_without_log_file_nothing_reaches_the_terminal(self) -> None:
        cli.configure_logging(None, verbose=False)

        handlers = logging.getLogger().handlers
        self.assertEqual(len(handlers), 1)
        self.assertIsInstance(handlers[0], logging.NullHandler)
        self.assertEqual(logging.getLogger().level, logging.INFO)


class TestMain(unittest.TestCase):
    def tearDown(self) -> None:
        cli.configure_logging(None, False)

    def test_requires_a_terminal(self) -> None:
        with mock.patch("sys.stdin") as stdin, mock.patch("sys.stderr"):
            stdin.isatty.return_value = False

            self.assertEqual(cli.main([]), 1)

    def test_interrupt_exit_code(self) -> None:
        with mock.patch("sys.stdin") as stdin, mock.patch("sys.stdout") as stdout, mock.patch.object(
            cli.App, "run", side_effect=KeyboardInterrupt
        ):
            stdin.isatty.return_value = True
            stdout.isatty.return_value = True

            self.assertEqual(cli.main([]), 130)


if __name__ == "__main__":
    unittest.main()
