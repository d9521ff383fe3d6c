import json
import logging
from tempfile import NamedTemporaryFile
from unittest import TestCase, mock

from .. import logging as test_module


class TestLoggingConfigurator(TestCase):
    def setUp(self):
        self.root_handlers = list(logging.root.handlers)
        self.root_level = logging.root.level

    def tearDown(self):
        for handler in logging.root.handlers:
            if handler not in self.root_handlers:
                handler.close()
        logging.root.handlers = self.root_handlers
        logging.root.setLevel(self.root_level)

    @mock.patch.object(test_module, "load_resource", autospec=True)
    @mock.patch.object(test_module.logging.config, "fileConfig", autospec=True)
    def test_configure_default(self, mock_file_config, mock_load_resource):
        test_module.LoggingConfigurator.configure()

        mock_load_resource.assert_called_once_with(
            test_module.DEFAULT_LOGGING_CONFIG_PATH_INI, "utf-8"
        )
        mock_file_config.assert_called_once_with(
            mock_load_resource.return_value, disable_existing_loggers=False
        )

    def test_configure_missing_config(self):
        with mock.patch.object(
            test_module, "load_resource", mock.MagicMock(return_value=None)
        ):
            test_module.LoggingConfigurator.configure("missing.ini", log_level="error")
        assert logging.root.level == logging.ERROR

    def test_configure_yaml(self):
        with NamedTemporaryFile("w", suffix=".yml") as config_file:
            config_file.write("version: 1\nroot:\n  level: INFO\n")
            config_file.flush()
            with mock.patch.object(
                test_module.logging.config, "dictConfig", autospec=True
            ) as mock_dict_config:
                test_module.LoggingConfigurator.configure(config_file.name)
        mock_dict_config.assert_called_once_with(
            {"version": 1, "root": {"level": "INFO"}}
        )

    def test_json_log_file_carries_wallet_id(self):
        with NamedTemporaryFile("r", suffix=".log") as log_file:
            test_module.LoggingConfigurator.configure(
                log_level="info", log_file=log_file.name, json_format=True
            )
            token = test_module.context_wallet_id.set("alice")
            try:
                logging.getLogger("oob_wallet.test").info("invitation received")
            finally:
                test_module.context_wallet_id.reset(token)
            for handler in logging.root.handlers:
                handler.flush()
            entry = json.loads(log_file.read().splitlines()[-1])
        assert entry["message"] == "invitation received"
        assert entry["wallet_id"] == "alice"
        assert entry["levelname"] == "INFO"

    def test_context_filter_outside_request(self):
        record = logging.LogRecord("x", logging.INFO, __file__, 1, "msg", None, None)
        assert test_module.ContextFilter().filter(record)
        assert record.wallet_id is None

    def test_load_resource(self):
        with test_module.load_resource(
            test_module.DEFAULT_LOGGING_CONFIG_PATH_INI, "utf-8"
        ) as stream:
            assert "[loggers]" in stream.read()
        assert test_module.load_resource("no/such/file.ini") is None
        assert test_module.load_resource("no_such_package:file.ini") is None
