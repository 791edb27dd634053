import unittest

from healthprobe.config import (
    ConfigError,
    Settings,
    build_parser,
    parse_args,
    parse_bind,
    parse_timeout,
)


class ParseArgsTests(unittest.TestCase):
    def test_defaults(self) -> None:
        cfg = parse_args(["--command", "curl -f http://localhost/ping"], parser=build_parser())

        self.assertEqual(cfg.COMMAND, "curl -f http://localhost/ping")
        self.assertEqual(cfg.TIMEOUT, 3.0)
        self.assertEqual(cfg.PERIODICITY, "@every 1s")
        self.assertEqual(cfg.LOG_LEVEL, "info")
        self.assertEqual(cfg.BIND, ":8080")
        self.assertEqual(cfg.RESOURCE_NAME, "/health")

    def test_flags_override_defaults(self) -> None:
        cfg = parse_args(
            [
                "--command", "true",
                "--timeout", "10",
                "--periodicity", "*/2 * * * *",
                "--log-level", "debug",
                "--bind", "127.0.0.1:9000",
                "--resource-name", "/alive",
            ]
        )

        self.assertEqual(cfg.TIMEOUT, 10.0)
        self.assertEqual(cfg.PERIODICITY, "*/2 * * * *")
        self.assertEqual(cfg.LOG_LEVEL, "debug")
        self.assertEqual(cfg.BIND, "127.0.0.1:9000")
        self.assertEqual(cfg.RESOURCE_NAME, "/alive")

    def test_resource_name_gets_leading_slash(self) -> None:
        cfg = parse_args(["--command", "true", "--resource-name", "ready"])

        self.assertEqual(cfg.RESOURCE_NAME, "/ready")

    def test_missing_command_is_a_config_error(self) -> None:
        with self.assertRaises(ConfigError):
            parse_args([])
        with self.assertRaises(ConfigError):
            parse_args(["--command", "   "])

    def test_bad_timeout_is_a_config_error(self) -> None:
        with self.assertRaises(ConfigError):
            parse_args(["--command", "true", "--timeout", "soon"])

    def test_bad_bind_is_a_config_error(self) -> None:
        with self.assertRaises(ConfigError):
            parse_args(["--command", "true", "--bind", "localhost"])

    def test_settings_supply_flag_defaults(self) -> None:
        defaults = Settings()
        defaults.COMMAND = "pg_isready"
        defaults.TIMEOUT = 7.0
        defaults.RESOURCE_NAME = "/db"

        cfg = parse_args([], parser=build_parser(defaults))

        self.assertEqual(cfg.COMMAND, "pg_isready")
        self.assertEqual(cfg.TIMEOUT, 7.0)
        self.assertEqual(cfg.RESOURCE_NAME, "/db")

    def test_flags_win_over_settings(self) -> None:
        defaults = Settings()
        defaults.COMMAND = "pg_isready"

        cfg = parse_args(["--command", "redis-cli ping"], parser=build_parser(defaults))

        self.assertEqual(cfg.COMMAND, "redis-cli ping")


class ParseBindTests(unittest.TestCase):
    def test_empty_host_listens_everywhere(self) -> None:
        self.assertEqual(parse_bind(":8080"), ("0.0.0.0", 8080))

    def test_explicit_host(self) -> None:
        self.assertEqual(parse_bind("127.0.0.1:9000"), ("127.0.0.1", 9000))

    def test_ipv6_host(self) -> None:
        self.assertEqual(parse_bind("[::1]:8080"), ("::1", 8080))

    def test_invalid(self) -> None:
        for bind in ("8080", "host:", "host:http", ":70000"):
            with self.subTest(bind=bind):
                with self.assertRaises(ConfigError):
                    parse_bind(bind)


class ParseTimeoutTests(unittest.TestCase):
    def test_accepts_numbers(self) -> None:
        self.assertEqual(parse_timeout("3"), 3.0)
        self.assertEqual(parse_timeout(0.5), 0.5)

    def test_rejects_negative(self) -> None:
        with self.assertRaises(ConfigError):
            parse_timeout("-1")


if __name__ == "__main__":
    unittest.main()
